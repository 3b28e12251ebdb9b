"""
Todo subsystem.

Components:
- todo_models.py: data structures (Member, Source, RecurrenceRule, Todo, parsed records)
- markdown_parser.py: front-matter + checklist parser (state machine)
- todo_store.py: SQLite-backed storage + upsert/query/delete helpers
- reconcile.py: writes parsed documents into the store (tombstone sweep or full reset)
- recurrence.py: occurrence boundaries and the reactivation sweep
- todo_service.py: list/create/update/clear operations used by the outer layers
"""
