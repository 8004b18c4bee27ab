"""Seed the lookup tables referenced by students.

Usage: python scripts/seed_lookups.py
"""
import sys
import pathlib
# Ensure `backend/` is on sys.path so `imdaz` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session, select
from imdaz.database import engine, create_db_and_tables
from imdaz import models

LOOKUPS = {
    models.Genero: ["Feminino", "Masculino", "Outro", "Prefere não informar"],
    models.Etnia: ["Branca", "Preta", "Parda", "Amarela", "Indígena"],
    models.Escola: ["Escola Municipal", "Escola Estadual"],
    models.TipoResidencia: ["Própria", "Alugada", "Cedida"],
    models.TipoParentesco: ["Mãe", "Pai", "Avó", "Avô", "Tio(a)", "Outro"],
}


def seed(session: Session) -> dict:
    """Insert missing lookup names and return how many were created per table."""
    created = {}
    for model, names in LOOKUPS.items():
        existing = set(session.exec(select(model.nome)).all())
        missing = [n for n in names if n not in existing]
        for nome in missing:
            session.add(model(nome=nome))
        created[model.__tablename__] = len(missing)
    session.commit()
    return created


def main():
    create_db_and_tables()
    with Session(engine) as session:
        for table, count in seed(session).items():
            print(f'{table}: {count} created')


if __name__ == '__main__':
    main()
