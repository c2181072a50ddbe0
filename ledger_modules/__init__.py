"""
Ledger Modules.

Thin layers over the Ledger Kernel and Engines.  Each module contains:
- Domain models (frozen dataclasses, the nouns)
- ORM models (persistence)
- Workflows (state machines) where the module has a lifecycle
- A service or materializer that writes through a caller-owned session

Modules:
- documents: captured business papers and their review lifecycle
- ledger: invoices, payments, delivery notes, daily entries, and the
  materializer that creates them from an approved document
- pricing: supplier item catalog, price history and price alerts
"""
