"""Test wire schema derivation."""

import json

import pytest
from pydantic import BaseModel

from evtwire.core.errors import UnsupportedShapeError
from evtwire.core.schema import derive_schema
from evtwire.core.shapes import NoneType, Scalar, SequenceOf, TupleOf, shape_of


class TestPrimitives:
    @pytest.mark.parametrize(
        "cls,avro",
        [
            (str, "string"),
            (int, "long"),
            (float, "double"),
            (bool, "boolean"),
            (bytes, "bytes"),
            (NoneType, "null"),
        ],
    )
    def test_avro_primitive(self, cls, avro):
        assert derive_schema(Scalar(cls)).avro == avro

    def test_json_schema_from_pydantic(self):
        assert derive_schema(Scalar(str)).json_schema == {"type": "string"}
        assert derive_schema(SequenceOf(Scalar(str))).json_schema == {
            "type": "array",
            "items": {"type": "string"},
        }


class TestContainers:
    def test_array(self):
        assert derive_schema(SequenceOf(Scalar(int))).avro == {"type": "array", "items": "long"}

    def test_tuple_is_positional_record(self):
        schema = derive_schema(TupleOf((Scalar(int), Scalar(str), Scalar(float))))
        assert schema.avro == {
            "type": "record",
            "name": "Tuple3",
            "fields": [
                {"name": "_1", "type": "long"},
                {"name": "_2", "type": "string"},
                {"name": "_3", "type": "double"},
            ],
        }
        assert schema.records == {"Tuple3": tuple}


class Fill(BaseModel):
    order_id: str
    qty: float
    fee: float | None = None
    legs: list[int] = []


class TestModels:
    def test_model_record(self):
        schema = derive_schema(Scalar(Fill))
        assert schema.avro == {
            "type": "record",
            "name": "Fill",
            "fields": [
                {"name": "order_id", "type": "string"},
                {"name": "qty", "type": "double"},
                {"name": "fee", "type": ["null", "double"]},
                {"name": "legs", "type": {"type": "array", "items": "long"}},
            ],
        }
        assert schema.records == {"Fill": Fill}

    def test_recursive_model_rejected(self):
        class Node(BaseModel):
            value: int
            child: "Node | None" = None

        Node.model_rebuild()
        with pytest.raises(UnsupportedShapeError):
            derive_schema(Scalar(Node))

    def test_non_optional_union_rejected(self):
        class Mixed(BaseModel):
            v: int | str

        with pytest.raises(UnsupportedShapeError):
            derive_schema(Scalar(Mixed))


class TestDeterminism:
    def test_equal_for_same_shape(self):
        a = derive_schema(shape_of(list[tuple[int, str]]))
        b = derive_schema(shape_of(list[tuple[int, str]]))
        assert a == b
        assert a.to_json() == b.to_json()

    def test_differs_for_other_shape(self):
        assert derive_schema(Scalar(int)) != derive_schema(Scalar(str))

    def test_to_json_is_canonical(self):
        schema = derive_schema(SequenceOf(Scalar(str)))
        assert schema.to_json() == '{"items":"string","type":"array"}'
        assert json.loads(schema.to_json()) == schema.avro


def test_unsupported_class():
    with pytest.raises(UnsupportedShapeError):
        derive_schema(Scalar(object))
    with pytest.raises(UnsupportedShapeError):
        derive_schema(SequenceOf(Scalar(complex)))
