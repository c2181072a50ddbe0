"""
Module ORM Registry (``ledger_modules._orm_registry``).

Responsibility
--------------
Ensure all module-level SQLAlchemy ORM models are imported so that
``Base.metadata`` contains their table definitions before tables are
created.  ``ledger_kernel.db.engine.create_tables()`` calls this.

Architecture position
---------------------
**Modules layer** -- utility.  MUST NOT be imported by ``ledger_kernel``
at module load time (create_tables imports it lazily).
"""


def import_all_orm_models() -> None:
    """Import every ``ledger_modules.*.orm`` module to register ORM models.

    Ledger tables are registered before documents because documents keep
    foreign keys to the records they produced.  Idempotent.
    """
    import ledger_modules.ledger.orm  # noqa: F401
    import ledger_modules.pricing.orm  # noqa: F401
    import ledger_modules.documents.orm  # noqa: F401
