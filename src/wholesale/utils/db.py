from protean.domain import Domain
from sqlalchemy import create_engine, text

_RDBMS_PROVIDERS = ("sqlite", "postgresql")


def setup_db(domain: Domain):
    """Create tables for every provider the domain is configured with"""
    with domain.domain_context():
        domain.setup_database()


def drop_db(domain: Domain):
    """Drop tables for every provider the domain is configured with"""
    with domain.domain_context():
        domain.drop_database()


def check_db(domain: Domain) -> dict[str, str]:
    """Report reachability of each configured provider.

    In-memory providers are always reported as ``ok``. RDBMS providers are
    probed with a ``SELECT 1`` over a short-lived engine.
    """
    status = {}
    for name, conn_info in domain.config["databases"].items():
        if conn_info.get("provider") not in _RDBMS_PROVIDERS:
            status[name] = "ok"
            continue

        engine = create_engine(conn_info["database_uri"])
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            status[name] = "ok"
        except Exception as exc:
            status[name] = f"unavailable: {exc.__class__.__name__}"
        finally:
            engine.dispose()

    return status
