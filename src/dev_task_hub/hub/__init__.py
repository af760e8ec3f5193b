"""
Hub subsystem.

Components:
- models.py: entities (Task, Note, Idea, HubSettings)
- normalize.py: total coercion of raw records into entities
- timer.py: task timer state machine (pure transitions)
- wip.py: one-active-task policy
- links.py: task <-> note cross references
- store.py: SQLite-backed record store
- snapshot.py: full in-memory view reloaded after every write
- transfer.py: export / import document framing
- ticker.py: live elapsed-time refresh for active tasks
- display.py: formatting, ordering and search helpers
- service.py: TaskHub, the operations the console calls
"""
