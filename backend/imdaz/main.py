"""FastAPI application entrypoint and HTTP controllers.

Controllers are intentionally thin: they read the authorization header,
path and body, delegate to a service and translate the `ServiceResult`
into a JSON response. Successful calls answer `{"data": ...}`; failures
answer `{"unauthorized": ...}` or `{"error": ...}` with a status code
chosen from the error kind.

Endpoints implemented:
- GET /
- GET /health
- POST /users/create
- POST /users/login
- GET /users/fetch
- PUT /users/update
- DELETE /users/{id}/delete
- GET /alunos
- GET /alunos/aniversariantes
- GET /alunos/{id}/fetch
- POST /alunos/create
- PUT /alunos/{id}/update
- DELETE /alunos/{id}/delete
"""

from typing import Any, Dict, Optional
import json
import logging
import time
import uuid

from fastapi import Body, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlmodel import Session

from .auth import Authorization, get_authorization
from .config import settings
from .database import create_db_and_tables, get_session
from .services import AlunoService, ErrorKind, ServiceResult, UserService

app = FastAPI(title="IMDAZ API")
logger = logging.getLogger("imdaz.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()

STATUS_BY_KIND = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.OPERATION_FAILED: 400,
    ErrorKind.CONNECTION: 503,
    ErrorKind.SCHEMA: 500,
    ErrorKind.UNKNOWN: 400,
}


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    context = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
    }
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        context["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception("request_failed %s", json.dumps(context, ensure_ascii=True))
        raise
    response.headers["X-Request-ID"] = req_id
    context["status_code"] = response.status_code
    context["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info("request_done %s", json.dumps(context, ensure_ascii=True))
    return response


def respond(result: ServiceResult, success_status: int = 200) -> JSONResponse:
    """Turn a service result into a JSON response."""
    if result.ok:
        return JSONResponse(status_code=success_status, content={"data": jsonable_encoder(result.data)})
    return JSONResponse(status_code=STATUS_BY_KIND[result.error.kind], content=result.payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Answer malformed paths and bodies with the same `{"error": ...}` shape."""
    errors = exc.errors()
    loc = errors[0].get("loc", ()) if errors else ()
    name = loc[-1] if loc else None
    if isinstance(name, str) and name != "body":
        message = f"O campo {name} é inválido."
    else:
        message = "Corpo da requisição inválido."
    logger.warning("request_invalid %s", json.dumps({"path": request.url.path, "loc": list(loc)}, default=str))
    return JSONResponse(status_code=422, content={"error": message})


@app.get("/")
def home():
    return {"message": "IMDAZ API"}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post('/users/create')
def create_user(data: Optional[Dict[str, Any]] = Body(default=None), db: Session = Depends(get_session)):
    """Register a new user.

    Expects `nome`, `email` and `senha` (at least 6 characters).
    """
    return respond(UserService(db).create(data), success_status=201)


@app.post('/users/login')
def login(data: Optional[Dict[str, Any]] = Body(default=None), db: Session = Depends(get_session)):
    """Authenticate a user and return `{"token": ...}`.

    The token carries `user_id` and `email` and must be sent back as
    `Authorization: Bearer <token>`.
    """
    return respond(UserService(db).login(data))


@app.get('/users/fetch')
def fetch_user(authorization: Authorization = Depends(get_authorization), db: Session = Depends(get_session)):
    return respond(UserService(db).fetch(authorization))


@app.put('/users/update')
def update_user(
    data: Optional[Dict[str, Any]] = Body(default=None),
    authorization: Authorization = Depends(get_authorization),
    db: Session = Depends(get_session),
):
    return respond(UserService(db).update(authorization, data))


@app.delete('/users/{user_id}/delete')
def remove_user(user_id: int, authorization: Authorization = Depends(get_authorization), db: Session = Depends(get_session)):
    return respond(UserService(db).remove(authorization, user_id))


@app.get('/alunos')
def list_alunos(authorization: Authorization = Depends(get_authorization), db: Session = Depends(get_session)):
    """List every student ordered by name."""
    return respond(AlunoService(db).index(authorization))


@app.get('/alunos/aniversariantes')
def birthday_alunos(authorization: Authorization = Depends(get_authorization), db: Session = Depends(get_session)):
    """Students with a birthday in the current week (Monday to Sunday)."""
    return respond(AlunoService(db).birthday(authorization))


@app.get('/alunos/{aluno_id}/fetch')
def fetch_aluno(aluno_id: int, authorization: Authorization = Depends(get_authorization), db: Session = Depends(get_session)):
    return respond(AlunoService(db).fetch(authorization, aluno_id))


@app.post('/alunos/create')
def create_aluno(
    data: Optional[Dict[str, Any]] = Body(default=None),
    authorization: Authorization = Depends(get_authorization),
    db: Session = Depends(get_session),
):
    """Create a student.

    Required fields are validated by the service; optional socio-economic
    fields are normalized the same way or stored as `null`.
    """
    return respond(AlunoService(db).create(authorization, data), success_status=201)


@app.put('/alunos/{aluno_id}/update')
def update_aluno(
    aluno_id: int,
    data: Optional[Dict[str, Any]] = Body(default=None),
    authorization: Authorization = Depends(get_authorization),
    db: Session = Depends(get_session),
):
    """Replace every field of a student."""
    return respond(AlunoService(db).update(authorization, data, aluno_id))


@app.delete('/alunos/{aluno_id}/delete')
def delete_aluno(aluno_id: int, authorization: Authorization = Depends(get_authorization), db: Session = Depends(get_session)):
    """Delete a student together with its class enrollments."""
    return respond(AlunoService(db).delete(authorization, aluno_id))
