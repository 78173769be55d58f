from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import make_url

LOCAL_DB_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "postgres", "codecircle_postgres"})


@dataclass(frozen=True, slots=True)
class IntegrationDbTarget:
    database_name: str
    host: str
    backend: str
    problem: str | None

    @property
    def is_safe(self) -> bool:
        return self.problem is None


def inspect_integration_db(database_url: str) -> IntegrationDbTarget:
    """Classifies a DATABASE_URL as a disposable local test database or not.

    Integration tests truncate every engine table, so only PostgreSQL databases
    on a local host whose name contains ``test`` are accepted.
    """
    parsed = make_url(database_url)
    database_name = (parsed.database or "").strip()
    host = (parsed.host or "").strip().lower()
    backend = parsed.get_backend_name()

    problem: str | None = None
    if backend != "postgresql":
        problem = "only PostgreSQL test databases are supported"
    elif not database_name:
        problem = "database name is empty"
    elif "test" not in database_name.lower():
        problem = "database name must contain 'test'"
    elif host not in LOCAL_DB_HOSTS:
        problem = f"host '{host}' is not a local integration-test host"

    return IntegrationDbTarget(
        database_name=database_name,
        host=host,
        backend=backend,
        problem=problem,
    )


def assert_safe_integration_db(database_url: str) -> None:
    target = inspect_integration_db(database_url)
    if target.is_safe:
        return
    raise RuntimeError(
        "Refusing to truncate engine tables on a non-test database: "
        f"{target.problem} (db='{target.database_name}' host='{target.host}'). "
        "Point DATABASE_URL at a local database such as 'codecircle_test'."
    )
