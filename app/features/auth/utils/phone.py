import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable

ISRAEL_COUNTRY_CODE = "+972"

# +972 followed by a mobile prefix and a 7-digit subscriber number
ISRAELI_MOBILE_PATTERN = re.compile(r"^\+972(50|52|53|54|55|58)\d{7}$")


def strip_separators(phone: str) -> str:
    return phone.replace(" ", "").replace("-", "")


def normalize_israeli_phone(phone: str) -> str:
    """Canonicalize an Israeli number to +972 form.

    A national trunk prefix (leading 0) is replaced by the country code, and a
    number without a leading + gets the country code prepended.
    """
    phone = strip_separators(phone)

    if phone.startswith("0"):
        phone = ISRAEL_COUNTRY_CODE + phone[1:]

    if not phone.startswith("+"):
        phone = ISRAEL_COUNTRY_CODE + phone

    return phone


def is_valid_israeli_mobile(phone: str) -> bool:
    return bool(ISRAELI_MOBILE_PATTERN.match(phone))


def is_valid_generic_phone(phone: str) -> bool:
    """Multi-country check: only the leading + of the international form is required."""
    return phone.startswith("+")


def mask_phone(phone: str) -> str:
    if len(phone) < 8:
        return phone
    return phone[:6] + "****" + phone[-2:]


class LocaleValidationPolicy(str, Enum):
    GENERIC = "generic"
    ISRAELI_MOBILE = "israeli_mobile"


@dataclass(frozen=True)
class PhonePolicy:
    name: LocaleValidationPolicy
    normalize: Callable[[str], str]
    validate: Callable[[str], bool]
    invalid_message: str
    # Language of the SMS sent by the OTP provider
    locale: str


PHONE_POLICIES = {
    LocaleValidationPolicy.GENERIC: PhonePolicy(
        name=LocaleValidationPolicy.GENERIC,
        normalize=strip_separators,
        validate=is_valid_generic_phone,
        invalid_message=(
            "Phone number must start with + and the country code (e.g. +33612345678)"
        ),
        locale="fr",
    ),
    LocaleValidationPolicy.ISRAELI_MOBILE: PhonePolicy(
        name=LocaleValidationPolicy.ISRAELI_MOBILE,
        normalize=normalize_israeli_phone,
        validate=is_valid_israeli_mobile,
        invalid_message="Invalid Israeli mobile number format. Use +972501234567",
        locale="he",
    ),
}


def get_phone_policy(name) -> PhonePolicy:
    return PHONE_POLICIES[LocaleValidationPolicy(name)]
