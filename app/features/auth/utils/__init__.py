from app.features.auth.utils.phone import (
    LocaleValidationPolicy,
    PhonePolicy,
    get_phone_policy,
    is_valid_generic_phone,
    is_valid_israeli_mobile,
    mask_phone,
    normalize_israeli_phone,
)
from app.features.auth.utils.security import create_access_token, decode_access_token

__all__ = [
    "LocaleValidationPolicy",
    "PhonePolicy",
    "get_phone_policy",
    "is_valid_generic_phone",
    "is_valid_israeli_mobile",
    "mask_phone",
    "normalize_israeli_phone",
    "create_access_token",
    "decode_access_token"
]
