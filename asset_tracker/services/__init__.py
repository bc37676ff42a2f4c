"""
Service layer package.

Each service module encapsulates one domain of business logic.
Services are the only layer that interacts with models; routes
never write to the database directly.

  - user_service       -> user directory (identity store)
  - asset_store        -> current asset rows
  - history_service    -> append-only asset history ledger
  - lifecycle_service  -> create / edit / transition / delete
  - query_service      -> read-side joins of the three stores
  - dashboard_service  -> status and category counts

Store functions take the session as their first argument.  Mutating
service functions open exactly one ``unit_of_work()`` and pass its
session down, so every write of an operation shares one transaction::

    from asset_tracker.services import lifecycle_service
    lifecycle_service.transition(asset_id, "allocated", ...)
"""
