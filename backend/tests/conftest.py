from datetime import date
from pathlib import Path
import os

# Point the app at a throwaway SQLite file before `imdaz` is imported.
TEST_DB = Path(__file__).resolve().parents[1] / "test_app.db"
if TEST_DB.exists():
    TEST_DB.unlink()
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB}"

import pytest
from sqlmodel import SQLModel, Session

from imdaz import models
from imdaz.auth import TokenVerifier
from imdaz.database import engine


@pytest.fixture(autouse=True)
def reset_db():
    """Recreate every table so each test starts from an empty database."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


@pytest.fixture
def lookups(db):
    """One row per lookup table; returns the foreign key values to use."""
    rows = {
        "genero_id": models.Genero(nome="Feminino"),
        "etnia_id": models.Etnia(nome="Parda"),
        "escola_id": models.Escola(nome="Escola Municipal"),
        "tipo_residencia_id": models.TipoResidencia(nome="Própria"),
        "tipo_parentesco_id": models.TipoParentesco(nome="Mãe"),
    }
    for row in rows.values():
        db.add(row)
    db.commit()
    return {key: row.id for key, row in rows.items()}


@pytest.fixture
def verifier():
    return TokenVerifier()


@pytest.fixture
def token(verifier):
    return verifier.issue(1, "ana@example.com")


@pytest.fixture
def aluno_data(lookups):
    data = {
        "nome": "Ana",
        "cep": "00000-000",
        "rua": "Rua das Flores",
        "bairro": "Centro",
        "cidade": "Porto Alegre",
        "numero": "123",
        "cpf": "123.456.789-09",
        "rg": "1234567890",
        "emissao_rg": "2020-03-15",
        "nascimento": "2012-05-20",
        "nome_responsavel": "Maria",
        "nome_mae": "Maria",
        "alfabetizado": True,
    }
    data.update(lookups)
    return data


@pytest.fixture
def birthday_in_week():
    """Build ISO birth dates (year 2012) landing `offset` days after this Monday."""
    def build(offset: int = 0) -> str:
        today = date.today()
        day = date.fromordinal(today.toordinal() - today.weekday() + offset)
        return date(2012, day.month, day.day).isoformat()
    return build
