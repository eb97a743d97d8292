from marshmallow import Schema, fields, validate
from vendorvault.enums import UserRole, PaymentMethod, WithdrawalMethod


class UserRegisterSchema(Schema):
    email = fields.Email(required=True)
    username = fields.Str(required=True, validate=validate.Length(min=3, max=100))
    password = fields.Str(required=True, validate=validate.Length(min=6))
    full_name = fields.Str(validate=validate.Length(max=255))
    role = fields.Str(
        required=True, validate=validate.OneOf([UserRole.BUYER.value, UserRole.SELLER.value])
    )
    store_name = fields.Str(validate=validate.Length(max=255))


class UserLoginSchema(Schema):
    username = fields.Str(required=True)
    password = fields.Str(required=True)


class CheckoutItemSchema(Schema):
    product_id = fields.Str(required=True)
    quantity = fields.Int(required=True, validate=validate.Range(min=1))


class CheckoutSchema(Schema):
    items = fields.List(
        fields.Nested(CheckoutItemSchema), required=True, validate=validate.Length(min=1)
    )
    payment_method = fields.Str(
        required=True, validate=validate.OneOf([method.value for method in PaymentMethod])
    )


class CheckoutStatusSchema(Schema):
    order_ids = fields.List(fields.Str(), required=True, validate=validate.Length(min=1))


class RefundRequestSchema(Schema):
    reason = fields.Str(validate=validate.Length(max=1000))


class AdminConfirmSchema(Schema):
    reference = fields.Str(validate=validate.Length(max=255))


class ReviewDecisionSchema(Schema):
    action = fields.Str(required=True, validate=validate.OneOf(["approve", "reject"]))
    reason = fields.Str(validate=validate.Length(max=1000))


class SettingsUpdateSchema(Schema):
    high_value_threshold = fields.Decimal(places=2, validate=validate.Range(min=0))
    require_manual_review_above = fields.Decimal(places=2, validate=validate.Range(min=0))
    delivery_delay_minutes = fields.Int(validate=validate.Range(min=0))


class WithdrawalCreateSchema(Schema):
    amount = fields.Decimal(required=True, places=2, validate=validate.Range(min=0, min_inclusive=False))
    method = fields.Str(
        required=True, validate=validate.OneOf([method.value for method in WithdrawalMethod])
    )
    account_info = fields.Dict(keys=fields.Str(), values=fields.Str(), required=True)


class WithdrawalDecisionSchema(Schema):
    action = fields.Str(required=True, validate=validate.OneOf(["approve", "reject", "complete"]))
    note = fields.Str(validate=validate.Length(max=1000))


class DepositCreateSchema(Schema):
    amount = fields.Decimal(required=True, places=2, validate=validate.Range(min=1, max=10000))
