"""Business logic services used by HTTP controllers.

Every public service operation returns a `ServiceResult` and never
raises: authorization, validation and persistence failures are turned
into one of three response shapes,

- `{"unauthorized": message}` when the caller is not logged in,
- `{"error": message}` for any other failure,
- the success payload (a list, a record, a confirmation string).

Persistence errors follow a fixed taxonomy independent of the resource:
cannot reach the database, table not found, or the driver message
passed through as is.
"""

import abc
import enum
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Optional

from passlib.context import CryptContext
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError, SQLAlchemyError
from sqlmodel import Session

from . import models, repositories, schemas
from .auth import Authorization, TokenVerifier, is_error_marker
from .validator import ValidationError, Validator

logger = logging.getLogger("imdaz.services")

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

UNAUTHORIZED_MESSAGE = "Realize o login para acessar esse recurso."
CONNECTION_MESSAGE = "Não foi possível conectar ao banco de dados."
MISSING_TABLE_MESSAGE = "Não foi possível encontrar a tabela."

# SQLSTATE / driver codes for "table does not exist" (ANSI, PostgreSQL, MySQL)
MISSING_TABLE_CODES = {"42S02", "42P01", 1146}


class ErrorKind(str, enum.Enum):
    UNAUTHORIZED = "unauthorized"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    OPERATION_FAILED = "operation_failed"
    CONNECTION = "connection"
    SCHEMA = "schema"
    UNKNOWN = "unknown"


@dataclass
class ServiceError:
    kind: ErrorKind
    message: str

    def payload(self) -> Dict[str, str]:
        if self.kind is ErrorKind.UNAUTHORIZED:
            return {"unauthorized": self.message}
        return {"error": self.message}


@dataclass
class ServiceResult:
    """Outcome of a service call: either `data` or an `error`."""
    data: Any = None
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any) -> "ServiceResult":
        return cls(data=data)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "ServiceResult":
        return cls(error=ServiceError(kind, message))

    def payload(self) -> Any:
        """Render the result in one of the three response shapes."""
        if self.error is not None:
            return self.error.payload()
        return self.data


def _is_missing_table(text: str) -> bool:
    text = text.lower()
    if "no such table" in text:
        return True
    if "table" in text and "doesn't exist" in text:
        return True
    return "relation" in text and "does not exist" in text


def classify_db_error(exc: SQLAlchemyError) -> ServiceError:
    """Map a SQLAlchemy error onto the persistence error taxonomy."""
    orig = getattr(exc, "orig", None) or exc
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code is None and getattr(orig, "args", None):
        code = orig.args[0]
    text = str(orig)
    try:
        known_code = code in MISSING_TABLE_CODES
    except TypeError:
        known_code = False
    if known_code or _is_missing_table(text):
        return ServiceError(ErrorKind.SCHEMA, MISSING_TABLE_MESSAGE)
    if isinstance(exc, (OperationalError, InterfaceError, DisconnectionError)):
        return ServiceError(ErrorKind.CONNECTION, CONNECTION_MESSAGE)
    if getattr(exc, "connection_invalidated", False):
        return ServiceError(ErrorKind.CONNECTION, CONNECTION_MESSAGE)
    return ServiceError(ErrorKind.UNKNOWN, text)


class BaseService:
    """Shared guard logic: token gating and failure mapping."""
    resource = "resource"

    def __init__(self, session: Optional[Session] = None, verifier: Optional[TokenVerifier] = None):
        self.session = session
        self.verifier = verifier or TokenVerifier()

    def _guarded(self, action: Callable[[], ServiceResult]) -> ServiceResult:
        """Run `action`, converting any failure into a `ServiceResult`."""
        try:
            return action()
        except ValidationError as e:
            return ServiceResult.failure(ErrorKind.VALIDATION, e.message)
        except SQLAlchemyError as e:
            self._rollback()
            error = classify_db_error(e)
            if error.kind is ErrorKind.UNKNOWN:
                logger.exception("%s: persistence failure", self.resource)
            else:
                logger.warning("%s: %s (%s)", self.resource, error.kind.value, e.__class__.__name__)
            return ServiceResult(error=error)
        except Exception as e:
            self._rollback()
            logger.exception("%s: unexpected failure", self.resource)
            return ServiceResult.failure(ErrorKind.UNKNOWN, str(e))

    def _authorized(self, authorization: Authorization, action: Callable[[dict], ServiceResult]) -> ServiceResult:
        """Gate `action` behind the caller's token.

        An upstream error marker is echoed back verbatim without looking
        at the token or the store.
        """
        if is_error_marker(authorization):
            return ServiceResult.failure(ErrorKind.UNAUTHORIZED, authorization["error"])

        def gated() -> ServiceResult:
            identity = self.verifier.verify(authorization)
            if not identity:
                return ServiceResult.failure(ErrorKind.UNAUTHORIZED, UNAUTHORIZED_MESSAGE)
            return action(identity)

        return self._guarded(gated)

    def _rollback(self):
        if self.session is not None:
            self.session.rollback()


class CrudService(BaseService, abc.ABC):
    """Authenticated CRUD over one repository.

    Subclasses declare the validation `rules` for required fields, the
    `optional_fields` rules (stored as `None` when not informed), the
    user facing `messages`, and how to build their repository.
    """
    rules: Dict[str, str] = {}
    optional_fields: Dict[str, str] = {}
    messages: Dict[str, str] = {}

    def __init__(self, session: Optional[Session] = None, repository=None,
                 verifier: Optional[TokenVerifier] = None, validator: Optional[Validator] = None):
        super().__init__(session, verifier)
        self.repository = repository if repository is not None else self.make_repository(session)
        self.validator = validator or Validator(self.rules, self.optional_fields)

    @abc.abstractmethod
    def make_repository(self, session: Session):
        """Build the repository used when none is injected."""

    def clean(self, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Validate the required and optional fields of `data`, dropping the rest."""
        data = data or {}
        fields = {name: data.get(name, "") for name in self.rules}
        fields.update({name: data.get(name) for name in self.optional_fields})
        return self.validator.validate(fields)

    def _found(self, value: Any, key: str) -> ServiceResult:
        if not value:
            return ServiceResult.failure(ErrorKind.NOT_FOUND, self.messages[key])
        return ServiceResult.success(value)

    def _confirm(self, value: Any, key: str, identity: dict) -> ServiceResult:
        if not value:
            return ServiceResult.failure(ErrorKind.OPERATION_FAILED, self.messages[key])
        logger.info("%s %s by user %s", self.resource, key, identity.get("user_id"))
        return ServiceResult.success(self.messages[f"{key}_ok"])

    def index(self, authorization: Authorization) -> ServiceResult:
        return self._authorized(authorization, lambda identity: self._found(self.repository.index(), "index"))

    def fetch(self, authorization: Authorization, record_id: int) -> ServiceResult:
        return self._authorized(
            authorization, lambda identity: self._found(self.repository.find(record_id), "fetch")
        )

    def create(self, authorization: Authorization, data: Dict[str, Any]) -> ServiceResult:
        return self._authorized(
            authorization,
            lambda identity: self._confirm(self.repository.save(self.clean(data)), "create", identity),
        )

    def update(self, authorization: Authorization, data: Dict[str, Any], record_id: int) -> ServiceResult:
        return self._authorized(
            authorization,
            lambda identity: self._confirm(self.repository.update(record_id, self.clean(data)), "update", identity),
        )

    def delete(self, authorization: Authorization, record_id: int) -> ServiceResult:
        return self._authorized(
            authorization, lambda identity: self._confirm(self.repository.delete(record_id), "delete", identity)
        )


ALUNO_RULES = {
    "nome": "text",
    "cep": "cep",
    "rua": "text",
    "bairro": "text",
    "cidade": "text",
    "numero": "text",
    "cpf": "cpf",
    "rg": "text",
    "emissao_rg": "date",
    "nascimento": "date",
    "genero_id": "fk",
    "etnia_id": "fk",
    "escola_id": "fk",
    "tipo_residencia_id": "fk",
    "tipo_parentesco_id": "fk",
    "nome_responsavel": "text",
    "nome_mae": "text",
    "alfabetizado": "bool",
}

ALUNO_OPTIONAL_FIELDS = {
    "nis": "text",
    "telefone": "text",
    "deficiencias": "text",
    "mae_trabalha_fora": "bool",
    "mae_interesse_projetos": "bool",
    "renda_familiar_mensal": "number",
    "quantidade_filhos": "int",
    "possui_irmao_instituicao": "bool",
    "recebe_bolsa_familia": "bool",
    "direito_imagem": "bool",
    "possui_banheiro": "bool",
    "possui_agua": "bool",
    "possui_luz": "bool",
    "nota_fiscal_gaucha": "bool",
}


class AlunoService(CrudService):
    """Student operations exposed under `/alunos`."""
    resource = "aluno"
    rules = ALUNO_RULES
    optional_fields = ALUNO_OPTIONAL_FIELDS
    messages = {
        "index": "Não foi possível encontrar os alunos.",
        "fetch": "Não foi possível encontrar o aluno.",
        "create": "Não foi possível criar o aluno.",
        "create_ok": "Aluno criado com sucesso!",
        "update": "Não foi possível atualizar o aluno.",
        "update_ok": "Aluno atualizado com sucesso.",
        "delete": "Não foi possível remover o aluno.",
        "delete_ok": "Aluno removido com sucesso.",
        "birthday": "Não foi possível encontrar os alunos aniversariantes da semana.",
    }

    def make_repository(self, session: Session):
        return repositories.AlunoRepository(session)

    def birthday(self, authorization: Authorization, today: Optional[date] = None) -> ServiceResult:
        """Students with a birthday in the current week."""
        return self._authorized(
            authorization, lambda identity: self._found(self.repository.birthday(today), "birthday")
        )


USER_CREATE_RULES = {"nome": "text", "email": "email", "senha": "password"}
USER_LOGIN_RULES = {"email": "email", "senha": "password"}
USER_UPDATE_RULES = {"nome": "text", "email": "email"}


class UserService(BaseService):
    """Registration, login and account management."""
    resource = "user"

    def __init__(self, session: Optional[Session] = None, repository=None, verifier: Optional[TokenVerifier] = None):
        super().__init__(session, verifier)
        self.repository = repository if repository is not None else repositories.UserRepository(session)

    def create(self, data: Dict[str, Any]) -> ServiceResult:
        """Register a new user with a hashed password."""
        def action() -> ServiceResult:
            fields = Validator(USER_CREATE_RULES).validate(_pick(data, USER_CREATE_RULES))
            if self.repository.get_by_email(fields["email"]):
                return ServiceResult.failure(ErrorKind.OPERATION_FAILED, "Já existe um usuário com esse e-mail.")
            user = models.User(
                nome=fields["nome"], email=fields["email"], password_hash=PWD_CTX.hash(fields["senha"])
            )
            if not self.repository.create(user):
                return ServiceResult.failure(ErrorKind.OPERATION_FAILED, "Não foi possível criar o usuário.")
            logger.info("user created id=%s", user.id)
            return ServiceResult.success("Usuário criado com sucesso!")
        return self._guarded(action)

    def login(self, data: Dict[str, Any]) -> ServiceResult:
        """Verify credentials and return a signed JWT token on success."""
        def action() -> ServiceResult:
            fields = Validator(USER_LOGIN_RULES).validate(_pick(data, USER_LOGIN_RULES))
            user = self.repository.get_by_email(fields["email"])
            if not user or not PWD_CTX.verify(fields["senha"], user.password_hash):
                return ServiceResult.failure(ErrorKind.UNAUTHORIZED, "E-mail ou senha inválidos.")
            return ServiceResult.success({"token": self.verifier.issue(user.id, user.email)})
        return self._guarded(action)

    def fetch(self, authorization: Authorization) -> ServiceResult:
        """Return the logged in user."""
        def action(identity: dict) -> ServiceResult:
            user = self.repository.get(identity["user_id"])
            if not user:
                return ServiceResult.failure(ErrorKind.NOT_FOUND, "Não foi possível encontrar o usuário.")
            return ServiceResult.success(schemas.UserOut.model_validate(user, from_attributes=True))
        return self._authorized(authorization, action)

    def update(self, authorization: Authorization, data: Dict[str, Any]) -> ServiceResult:
        """Update name, email and optionally the password of the logged in user."""
        def action(identity: dict) -> ServiceResult:
            fields = Validator(USER_UPDATE_RULES).validate(_pick(data, USER_UPDATE_RULES))
            user = self.repository.get(identity["user_id"])
            if not user:
                return ServiceResult.failure(ErrorKind.OPERATION_FAILED, "Não foi possível atualizar o usuário.")
            other = self.repository.get_by_email(fields["email"])
            if other and other.id != user.id:
                return ServiceResult.failure(ErrorKind.OPERATION_FAILED, "Já existe um usuário com esse e-mail.")
            if data and data.get("senha"):
                senha = Validator({"senha": "password"}).validate({"senha": data["senha"]})["senha"]
                fields["password_hash"] = PWD_CTX.hash(senha)
            self.repository.update(user, fields)
            return ServiceResult.success("Usuário atualizado com sucesso.")
        return self._authorized(authorization, action)

    def remove(self, authorization: Authorization, user_id: int) -> ServiceResult:
        def action(identity: dict) -> ServiceResult:
            if not self.repository.delete(user_id):
                return ServiceResult.failure(ErrorKind.OPERATION_FAILED, "Não foi possível remover o usuário.")
            logger.info("user %s removed by user %s", user_id, identity.get("user_id"))
            return ServiceResult.success("Usuário removido com sucesso.")
        return self._authorized(authorization, action)


def _pick(data: Optional[Dict[str, Any]], rules: Dict[str, str]) -> Dict[str, Any]:
    data = data or {}
    return {name: data.get(name, "") for name in rules}
