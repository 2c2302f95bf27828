from __future__ import annotations

from dataclasses import dataclass, field

import pytest
from pydantic import BaseModel, ConfigDict, Field

from tableshard.domain.fields import (
    convert_records,
    extract_value,
    field_map_for,
    record_to_row,
    register_fields,
    to_snake_case,
)
from tableshard.errors import FieldNotFound, RecordConversionError


@dataclass
class Payment:
    payment_id: int = field(metadata={"column": "pay_no", "json": "paymentId"})
    amount: float = 0.0


class Order(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: int = Field(alias="orderId", json_schema_extra={"column": "order_no"})
    user_id: int = 0


class LegacyUser:
    __shard_columns__ = {"uid": "user_id"}

    uid: int

    def __init__(self, uid: int = 0) -> None:
        self.uid = uid


class Tenant:
    def __init__(self, tenant_key: str = "") -> None:
        self.tenant_key = tenant_key


@pytest.mark.parametrize(
    ("name", "expected"),
    [("UserID", "user_id"), ("createdAt", "created_at"), ("user_id", "user_id"), ("HTTPStatus", "http_status")],
)
def test_to_snake_case(name: str, expected: str):
    assert to_snake_case(name) == expected


class TestExtractValue:
    def test_exact_attribute(self):
        assert extract_value(Payment(payment_id=3), "payment_id") == 3

    def test_declared_column(self):
        assert extract_value(Payment(payment_id=3), "pay_no") == 3

    def test_declared_external_name(self):
        assert extract_value(Payment(payment_id=3), "paymentId") == 3

    def test_case_insensitive_snake_case(self):
        assert extract_value(Payment(payment_id=3), "PaymentID") == 3

    def test_pydantic_alias_and_column(self):
        order = Order(orderId=9, user_id=2)
        assert extract_value(order, "orderId") == 9
        assert extract_value(order, "order_no") == 9
        assert extract_value(order, "OrderID") == 9

    def test_class_level_column_declaration(self):
        assert extract_value(LegacyUser(uid=4), "user_id") == 4

    def test_registered_columns(self):
        register_fields(Tenant, columns={"tenant_key": "tenant"})
        assert field_map_for(Tenant).column_for("tenant_key") == "tenant"
        assert extract_value(Tenant("acme"), "tenant") == "acme"

    def test_undeclared_instance_attribute(self):
        assert extract_value(Tenant("acme"), "TenantKey") == "acme"

    def test_mapping_exact_and_folded(self):
        row = {"user_id": 5}
        assert extract_value(row, "user_id") == 5
        assert extract_value(row, "UserID") == 5

    def test_missing_field_raises(self):
        with pytest.raises(FieldNotFound) as excinfo:
            extract_value(Payment(payment_id=1), "tenant_id")
        assert excinfo.value.field_name == "tenant_id"
        assert excinfo.value.record_type == "Payment"

    def test_missing_mapping_key_raises(self):
        with pytest.raises(FieldNotFound):
            extract_value({"a": 1}, "b")

    def test_none_record_raises(self):
        with pytest.raises(FieldNotFound):
            extract_value(None, "user_id")


class TestRecordToRow:
    def test_dataclass_uses_declared_columns(self):
        assert record_to_row(Payment(payment_id=3, amount=1.5)) == {"pay_no": 3, "amount": 1.5}

    def test_pydantic_model(self):
        assert record_to_row(Order(orderId=9, user_id=2)) == {"order_no": 9, "user_id": 2}

    def test_mapping_is_copied(self):
        row = {"user_id": 1}
        converted = record_to_row(row)
        assert converted == row
        assert converted is not row


class TestConvertRecords:
    def test_none_keeps_dicts(self):
        rows = [{"user_id": 1}]
        assert convert_records(rows) == rows

    def test_dataclass_from_columns(self):
        converted = convert_records([{"pay_no": 3, "amount": 2.5}], Payment)
        assert converted == [Payment(payment_id=3, amount=2.5)]

    def test_pydantic_from_columns_case_insensitive(self):
        converted = convert_records([{"ORDER_NO": 9, "user_id": 2}], Order)
        assert converted == [Order(orderId=9, user_id=2)]

    def test_conversion_failure_raises(self):
        with pytest.raises(RecordConversionError):
            convert_records([{"user_id": 2}], Order)

    def test_field_map_is_cached(self):
        assert field_map_for(Payment) is field_map_for(Payment)
