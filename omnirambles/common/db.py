import logging
from contextlib import contextmanager

from sqlalchemy import Table
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from omnirambles.common.errors import ConflictError, StorageError

logger = logging.getLogger(__name__)


@contextmanager
def atomic(session: Session):
    """Exécute un bloc dans une transaction: commit si tout passe, rollback sinon.

    IntegrityError -> ConflictError, autre erreur SQLAlchemy -> StorageError
    (opaque pour le client, tracée dans les logs).
    """
    try:
        yield session
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise ConflictError("Conflicting write.") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("storage_failure")
        raise StorageError() from exc
    except Exception:
        session.rollback()
        raise


def insert_ignore(session: Session, table: Table, values: dict, index_elements: list[str]) -> None:
    """INSERT qui tolère un conflit sur une contrainte unique (pas de read-then-insert).

    PostgreSQL et SQLite: ON CONFLICT DO NOTHING. Ailleurs: savepoint + IntegrityError.
    Ne commit pas: la transaction appartient à l'appelant.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        try:
            with session.begin_nested():
                session.execute(table.insert().values(**values))
        except IntegrityError:
            logger.debug("insert_conflict", extra={"table": table.name})
        return

    stmt = insert(table).values(**values).on_conflict_do_nothing(index_elements=index_elements)
    session.execute(stmt)
