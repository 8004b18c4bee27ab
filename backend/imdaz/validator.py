"""Input validation for service payloads.

A `Validator` is built from a mapping of field name to rule name. Each
field covered by a rule must be present and non-empty and must match the
rule's format; values come back normalized (trimmed text, `date`, `int`,
`bool`). Optional rules accept a missing value as `None` but still check
the format of anything given. Fields without a rule are returned untouched.
"""

import re
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional

CEP_RE = re.compile(r"^(\d{5})-?(\d{3})$")
CPF_RE = re.compile(r"^\d{3}\.?\d{3}\.?\d{3}-?\d{2}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

TRUE_VALUES = {"1", "true", "sim", "s", "yes"}
FALSE_VALUES = {"0", "false", "nao", "não", "n", "no"}


class ValidationError(ValueError):
    """Raised when a field is missing or does not match its rule."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


def _text(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise TypeError("expected a scalar value")
    return str(value).strip()


def _cep(value: Any) -> str:
    m = CEP_RE.match(_text(value))
    if not m:
        raise ValueError("invalid cep")
    return f"{m.group(1)}-{m.group(2)}"


def _cpf(value: Any) -> str:
    text = _text(value)
    if not CPF_RE.match(text):
        raise ValueError("invalid cpf")
    return text


def _email(value: Any) -> str:
    text = _text(value).lower()
    if not EMAIL_RE.match(text):
        raise ValueError("invalid email")
    return text


def _password(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError("password must be a string")
    text = value
    if len(text) < 6:
        raise ValueError("password too short")
    return text


def _date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(_text(value))


def _foreign_key(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not an id")
    number = int(_text(value))
    if number <= 0:
        raise ValueError("ids are positive")
    return number


def _boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = _text(value).lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError("invalid boolean")


def _integer(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError("not a whole number")
    number = int(_text(value)) if not isinstance(value, float) else int(value)
    if number < 0:
        raise ValueError("negative count")
    return number


def _number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    number = float(_text(value).replace(",", "."))
    if number < 0 or number != number:
        raise ValueError("invalid amount")
    return number


RULES: Dict[str, Callable[[Any], Any]] = {
    "text": _text,
    "cep": _cep,
    "cpf": _cpf,
    "email": _email,
    "password": _password,
    "date": _date,
    "fk": _foreign_key,
    "bool": _boolean,
    "int": _integer,
    "number": _number,
}


def is_empty(value: Any) -> bool:
    """Return True for values treated as "not informed".

    `False` and `0` are real answers, only `None` and blank strings count.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class Validator:
    """Validate and normalize a flat mapping of fields."""

    def __init__(self, rules: Dict[str, str], optional: Optional[Dict[str, str]] = None):
        optional = optional or {}
        unknown = (set(rules.values()) | set(optional.values())) - set(RULES)
        if unknown:
            raise KeyError(f"unknown validation rules: {sorted(unknown)}")
        self.rules = dict(rules)
        self.optional = dict(optional)

    def validate(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Return a normalized copy of `fields` or raise `ValidationError`.

        Rule fields are checked in declaration order so the error always
        names the first offending field.
        """
        cleaned = dict(fields)
        for name, rule in self.rules.items():
            value = fields.get(name)
            if is_empty(value):
                raise ValidationError(name, f"O campo {name} é obrigatório.")
            try:
                cleaned[name] = RULES[rule](value)
            except (TypeError, ValueError):
                raise ValidationError(name, f"O campo {name} é inválido.")
        for name, rule in self.optional.items():
            value = fields.get(name)
            if is_empty(value):
                cleaned[name] = None
                continue
            try:
                cleaned[name] = RULES[rule](value)
            except (TypeError, ValueError):
                raise ValidationError(name, f"O campo {name} é inválido.")
        return cleaned
