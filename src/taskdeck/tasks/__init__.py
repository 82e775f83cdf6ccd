"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Project, Notification, FilterOptions, ...)
- task_store.py: in-memory store + query/mutation operations, persisted as JSON
- filters.py: filter predicates behind TaskStore.filtered_tasks
- notifications.py: notification texts and due-date sweep rules
- storage.py: JSON file key-value storage
- task_scheduler.py: recurring due-date sweep
- task_api.py: dashboard helpers and input validation used by front-ends
"""
