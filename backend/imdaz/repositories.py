"""Repository classes encapsulating database operations.

Each repository is small and focused on a single table. Repositories
return SQLModel objects, commit their own writes and let SQLAlchemy
errors propagate; the services decide how failures are reported.
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional
from sqlmodel import Session, select
from sqlalchemy import delete, update
from . import models


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by email or `None` if not found."""
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def update(self, user: models.User, fields: Dict[str, Any]) -> models.User:
        for name, value in fields.items():
            setattr(user, name, value)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def delete(self, user_id: int) -> bool:
        result = self.session.execute(delete(models.User).where(models.User.id == user_id))
        self.session.commit()
        return result.rowcount > 0


class AlunoRepository:
    """Persistence for `Aluno` rows."""
    def __init__(self, session: Session):
        self.session = session

    def index(self) -> List[models.Aluno]:
        """Return every student ordered by name."""
        stmt = select(models.Aluno).order_by(models.Aluno.nome)
        return self.session.exec(stmt).all()

    def find(self, aluno_id: int) -> Optional[models.Aluno]:
        """Fetch a student by id."""
        return self.session.get(models.Aluno, aluno_id)

    def save(self, fields: Dict[str, Any]) -> models.Aluno:
        """Insert a student built from validated `fields`."""
        aluno = models.Aluno(**fields)
        self.session.add(aluno)
        self.session.commit()
        self.session.refresh(aluno)
        return aluno

    def update(self, aluno_id: int, fields: Dict[str, Any]) -> int:
        """Replace the stored attributes of a student.

        Returns the number of matched rows; `0` means the id does not
        exist.
        """
        values = dict(fields)
        values["updated_at"] = models.utcnow()
        stmt = update(models.Aluno).where(models.Aluno.id == aluno_id).values(**values)
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount

    def delete(self, aluno_id: int) -> int:
        """Delete a student; enrollments go with it through the FK cascade."""
        result = self.session.execute(delete(models.Aluno).where(models.Aluno.id == aluno_id))
        self.session.commit()
        return result.rowcount

    def birthday(self, today: Optional[date] = None) -> List[models.Aluno]:
        """Return students whose birthday falls in the current week.

        The week runs Monday to Sunday around `today`. Dates are compared
        by month/day so the query works on any backend; a 29 February
        birthday only matches in leap years.
        """
        today = today or date.today()
        monday = today - timedelta(days=today.weekday())
        week = [monday + timedelta(days=offset) for offset in range(7)]
        order = {(d.month, d.day): i for i, d in enumerate(week)}
        stmt = select(models.Aluno).where(models.Aluno.nascimento.is_not(None))
        matches = [
            a for a in self.session.exec(stmt).all()
            if (a.nascimento.month, a.nascimento.day) in order
        ]
        matches.sort(key=lambda a: (order[(a.nascimento.month, a.nascimento.day)], a.nome))
        return matches
