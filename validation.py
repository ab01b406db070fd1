"""
Declarative request validation.

A route declares an ordered list of FieldRules. validate() walks every field,
runs its rules in order and keeps only the first failing message per field, so
"cannot be empty" is never followed by a length complaint for the same field.
Fields are checked independently of each other.

With partial=True (PATCH routes) a field whose key is absent from the payload
is skipped entirely; a key that is present but null or empty still fails its
required rule.
"""

import math
import re
from typing import Any, Callable, Dict, Iterable, Optional

from email_validator import EmailNotValidError, validate_email

from errors import ValidationFailure

# plain decimal notation such as "-3.50" or ".5"
NUMERIC_TEXT = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)")

# BSON stores integers as signed 64 bit
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class Rule:
    def __init__(self, message: str):
        self.message = message

    def check(self, value: Any) -> bool:
        raise NotImplementedError


class Required(Rule):
    def check(self, value: Any) -> bool:
        return value is not None and value != ""


class Length(Rule):
    def __init__(self, message: str, min_length: Optional[int] = None, max_length: Optional[int] = None,
                 trim: bool = False):
        super().__init__(message)
        self.min_length = min_length
        self.max_length = max_length
        self.trim = trim

    def check(self, value: Any) -> bool:
        text = value if isinstance(value, str) else str(value)
        if self.trim:
            text = text.strip()
        if self.min_length is not None and len(text) < self.min_length:
            return False
        if self.max_length is not None and len(text) > self.max_length:
            return False
        return True


def finite(value: int) -> bool:
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


class Numeric(Rule):
    def check(self, value: Any) -> bool:
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            return finite(value)
        if isinstance(value, float):
            return math.isfinite(value)
        if isinstance(value, str):
            return NUMERIC_TEXT.fullmatch(value) is not None and math.isfinite(float(value))
        return False


class Email(Rule):
    def check(self, value: Any) -> bool:
        if not isinstance(value, str):
            return False
        try:
            validate_email(value.strip(), check_deliverability=False)
        except EmailNotValidError:
            return False
        return True


def trimmed(value: Any) -> str:
    return value.strip() if isinstance(value, str) else str(value)


def as_text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def to_number(value: Any):
    # "100" -> 100, "7.2" -> 7.2; integers too wide for BSON become doubles
    if isinstance(value, float):
        return value
    if isinstance(value, int):
        number = value
    elif "." in value:
        return float(value)
    else:
        number = int(value)
    if INT64_MIN <= number <= INT64_MAX:
        return number
    return float(number)


class FieldRules:
    def __init__(self, name: str, *rules: Rule, clean: Optional[Callable[[Any], Any]] = None):
        self.name = name
        self.rules = rules
        self.clean = clean

    def first_failure(self, value: Any) -> Optional[str]:
        for rule in self.rules:
            if not rule.check(value):
                return rule.message
        return None


def validate(payload: Optional[Dict[str, Any]], fields: Iterable[FieldRules], partial: bool = False) -> Dict[str, Any]:
    """Return the cleaned values of the declared fields, or raise ValidationFailure."""
    payload = payload or {}
    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}
    for field in fields:
        if partial and field.name not in payload:
            continue
        value = payload.get(field.name)
        message = field.first_failure(value)
        if message:
            errors[field.name] = message
            continue
        cleaned[field.name] = field.clean(value) if field.clean else value
    if errors:
        raise ValidationFailure(errors)
    return cleaned


# Route rule sets

def funkopop_rules(action: str):
    return [
        FieldRules(
            "title",
            Required(f"Cannot {action} funko pop without title!"),
            Length("Title has to be 10-50 characters long", min_length=10, max_length=50, trim=True),
            clean=trimmed,
        ),
        FieldRules(
            "price",
            Required(f"Cannot {action} funko pop without price!"),
            Numeric("Price has to be numeric"),
            clean=to_number,
        ),
        FieldRules(
            "description",
            Required(f"Cannot {action} funko pop without decription!"),
            Length("Description has to be 10-250 characters long", min_length=10, max_length=250, trim=True),
            clean=trimmed,
        ),
        FieldRules(
            "quantity",
            Required(f"Cannot {action} funko pop without quantity!"),
            Numeric("Quantity has to be numeric"),
            clean=to_number,
        ),
    ]


FUNKOPOP_CREATE_RULES = funkopop_rules("create")
FUNKOPOP_EDIT_RULES = funkopop_rules("edit")

REVIEW_RULES = [
    FieldRules(
        "message",
        Required("Message cannot be empty"),
        Length("Message has to be atleast 4 characters long", min_length=4),
        Length("Message cannot be more than 500 characters long", max_length=500),
        clean=as_text,
    ),
]

CREDENTIAL_RULES = [
    FieldRules(
        "email",
        Required("Email cannot be empty"),
        Email("Please provide a valid email address"),
        clean=trimmed,
    ),
    FieldRules(
        "password",
        Required("Password cannot be empty"),
        Length("Password must be atleast 8 characters long", min_length=8),
        clean=as_text,
    ),
]

FEDERATED_RULES = [
    FieldRules("token", Required("Token cannot be empty"), clean=as_text),
]
