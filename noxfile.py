import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]

# psycopg2 ships a C extension; a wheel cached for another interpreter breaks the postgres runs.
_REBUILD = ["psycopg2-binary"]


def _install(session: nox.Session, rebuild: bool = False) -> None:
    """Install wholesale with its test group through poetry."""
    session.run("poetry", "install", "--with", "test", "--all-extras", external=True)
    if rebuild:
        session.run("pip", "install", "--force-reinstall", "--no-cache-dir", *_REBUILD)


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Every test layer against the in-memory provider."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS)
def tests_domain(session: nox.Session) -> None:
    """Aggregates, pricing and compensations only; no database or HTTP."""
    _install(session)
    session.run("pytest", "tests/domain/", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_bdd(session: nox.Session) -> None:
    """Checkout and cancellation feature files."""
    _install(session)
    session.run("pytest", "tests/bdd/", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_postgres(session: nox.Session) -> None:
    """Command and API tests against PostgreSQL (DATABASE_URL must point at a scratch database)."""
    _install(session, rebuild=True)
    session.run("python", "src/manage.py", "setup-db", env={"PROTEAN_ENV": "staging"})
    session.run(
        "pytest",
        "--env",
        "staging",
        "tests/application/",
        "tests/integration/",
        *session.posargs,
        env={"PROTEAN_ENV": "staging"},
    )


@nox.session(python=PYTHON_VERSIONS[-1])
def lint(session: nox.Session) -> None:
    session.install("ruff")
    session.run("ruff", "check", "src", "tests")
