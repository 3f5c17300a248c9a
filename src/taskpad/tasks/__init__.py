"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Step, enums) and record migration
- task_store.py: in-memory reactive store (filter/sort/search, focus, mutations)
- task_persistence.py: debounced full-collection writes
- task_extractor.py: heuristic text -> task candidates
- task_api.py: import flow on top of the extractor and the store
"""
