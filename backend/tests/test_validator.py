from datetime import date

import pytest

from imdaz.services import ALUNO_RULES
from imdaz.validator import ValidationError, Validator


def test_required_field_missing_names_the_field():
    v = Validator({"nome": "text", "cidade": "text"})
    with pytest.raises(ValidationError) as exc:
        v.validate({"nome": "Ana", "cidade": "   "})
    assert exc.value.field == "cidade"
    assert exc.value.message == "O campo cidade é obrigatório."


def test_first_offending_field_is_reported():
    v = Validator(ALUNO_RULES)
    with pytest.raises(ValidationError) as exc:
        v.validate({})
    assert exc.value.field == "nome"


def test_values_are_normalized():
    v = Validator({"nome": "text", "cep": "cep", "nascimento": "date", "genero_id": "fk", "alfabetizado": "bool"})
    out = v.validate({"nome": "  Ana ", "cep": "90010000", "nascimento": "2012-05-20", "genero_id": "3", "alfabetizado": "sim"})
    assert out == {"nome": "Ana", "cep": "90010-000", "nascimento": date(2012, 5, 20), "genero_id": 3, "alfabetizado": True}


def test_false_is_a_present_value():
    out = Validator({"alfabetizado": "bool"}).validate({"alfabetizado": False})
    assert out["alfabetizado"] is False


@pytest.mark.parametrize("field,rule,value", [
    ("cep", "cep", "1234"),
    ("cpf", "cpf", "123.456"),
    ("nascimento", "date", "20/05/2012"),
    ("genero_id", "fk", "abc"),
    ("genero_id", "fk", 0),
    ("alfabetizado", "bool", "talvez"),
    ("email", "email", "not-an-email"),
    ("senha", "password", "123"),
    ("senha", "password", 12345678),
    ("nome", "text", {"x": 1}),
    ("rua", "text", ["a"]),
    ("quantidade_filhos", "int", -1),
    ("quantidade_filhos", "int", 1.5),
    ("renda_familiar_mensal", "number", "muito"),
])
def test_malformed_values_are_rejected(field, rule, value):
    with pytest.raises(ValidationError) as exc:
        Validator({field: rule}).validate({field: value})
    assert exc.value.message == f"O campo {field} é inválido."


def test_fields_without_rule_pass_through():
    out = Validator({"nome": "text"}).validate({"nome": "Ana", "telefone": None, "nis": " 12 "})
    assert out["telefone"] is None
    assert out["nis"] == " 12 "


def test_unknown_rule_is_a_programming_error():
    with pytest.raises(KeyError):
        Validator({"nome": "shout"})


def test_optional_fields_are_coerced_or_left_empty():
    v = Validator({"nome": "text"}, {"possui_luz": "bool", "quantidade_filhos": "int",
                                     "renda_familiar_mensal": "number", "telefone": "text"})
    out = v.validate({"nome": "Ana", "possui_luz": "true", "quantidade_filhos": "2",
                      "renda_familiar_mensal": "1500,50", "telefone": "  "})
    assert out["possui_luz"] is True
    assert out["quantidade_filhos"] == 2
    assert out["renda_familiar_mensal"] == 1500.5
    assert out["telefone"] is None


def test_optional_field_with_bad_value_is_rejected():
    v = Validator({"nome": "text"}, {"possui_luz": "bool"})
    with pytest.raises(ValidationError) as exc:
        v.validate({"nome": "Ana", "possui_luz": "talvez"})
    assert exc.value.field == "possui_luz"
    assert exc.value.message == "O campo possui_luz é inválido."
