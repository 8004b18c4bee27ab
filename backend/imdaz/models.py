"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Table names carry the `imdaz_` prefix used by the SQL migrations in
`backend/migrations/`.
"""

from typing import Optional
from sqlalchemy import Column, ForeignKey, Integer
from sqlmodel import SQLModel, Field
from datetime import datetime, date, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin(SQLModel):
    """`created_at`/`updated_at` columns managed by the ORM."""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, sa_column_kwargs={"onupdate": utcnow})


class User(TimestampMixin, table=True):
    """A user allowed to operate the backend.

    Fields:
    - `email`: unique login
    - `password_hash`: hashed password string (never store plaintext)
    """
    __tablename__ = "imdaz_users"

    id: Optional[int] = Field(default=None, primary_key=True)
    nome: str
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: str


class Genero(SQLModel, table=True):
    __tablename__ = "imdaz_generos"

    id: Optional[int] = Field(default=None, primary_key=True)
    nome: str


class Etnia(SQLModel, table=True):
    __tablename__ = "imdaz_etnias"

    id: Optional[int] = Field(default=None, primary_key=True)
    nome: str


class Escola(SQLModel, table=True):
    __tablename__ = "imdaz_escolas"

    id: Optional[int] = Field(default=None, primary_key=True)
    nome: str


class TipoResidencia(SQLModel, table=True):
    __tablename__ = "imdaz_tipos_residencia"

    id: Optional[int] = Field(default=None, primary_key=True)
    nome: str


class TipoParentesco(SQLModel, table=True):
    __tablename__ = "imdaz_tipos_parentesco"

    id: Optional[int] = Field(default=None, primary_key=True)
    nome: str


class Aluno(TimestampMixin, table=True):
    """A student registered in the institute.

    The required attributes are checked by the student service before
    they reach the table; the optional socio-economic attributes default
    to `None`.
    """
    __tablename__ = "imdaz_alunos"

    id: Optional[int] = Field(default=None, primary_key=True)
    nome: str = Field(index=True)
    cep: str
    rua: str
    bairro: str
    cidade: str
    numero: str
    cpf: str
    rg: str
    emissao_rg: date
    nascimento: date
    genero_id: int = Field(foreign_key="imdaz_generos.id")
    etnia_id: int = Field(foreign_key="imdaz_etnias.id")
    escola_id: int = Field(foreign_key="imdaz_escolas.id")
    tipo_residencia_id: int = Field(foreign_key="imdaz_tipos_residencia.id")
    tipo_parentesco_id: int = Field(foreign_key="imdaz_tipos_parentesco.id")
    nome_responsavel: str
    nome_mae: str
    alfabetizado: bool
    nis: Optional[str] = None
    telefone: Optional[str] = None
    deficiencias: Optional[str] = None
    mae_trabalha_fora: Optional[bool] = None
    mae_interesse_projetos: Optional[bool] = None
    renda_familiar_mensal: Optional[float] = None
    quantidade_filhos: Optional[int] = None
    possui_irmao_instituicao: Optional[bool] = None
    recebe_bolsa_familia: Optional[bool] = None
    direito_imagem: Optional[bool] = None
    possui_banheiro: Optional[bool] = None
    possui_agua: Optional[bool] = None
    possui_luz: Optional[bool] = None
    nota_fiscal_gaucha: Optional[bool] = None


class Turma(TimestampMixin, table=True):
    """A class students can be enrolled in."""
    __tablename__ = "imdaz_turmas"

    id: Optional[int] = Field(default=None, primary_key=True)
    nome: str


class AlunoTurma(TimestampMixin, table=True):
    """Enrollment of an `Aluno` in a `Turma`.

    Rows go away with either side: both foreign keys are declared with
    `ON DELETE CASCADE`.
    """
    __tablename__ = "imdaz_alunos_turmas"

    id: Optional[int] = Field(default=None, primary_key=True)
    aluno_id: int = Field(
        sa_column=Column(Integer, ForeignKey("imdaz_alunos.id", ondelete="CASCADE"), nullable=False)
    )
    turma_id: int = Field(
        sa_column=Column(Integer, ForeignKey("imdaz_turmas.id", ondelete="CASCADE"), nullable=False)
    )
