"""
Task instance subsystem.

Components:
- task_models.py: typed records (TaskDefinition, ChildMember, TaskInstance)
- task_store.py: SQLite-backed storage implementing the TaskRepo port
- recurrence.py: resolver (run date + definition -> due date)
- materializer.py: automatic sweep, idempotent create-if-absent
- manual.py: validated all-or-nothing manual assignment
- task_generator.py: daily asyncio loop around the sweep
"""
