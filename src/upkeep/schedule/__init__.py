"""
Schedule subsystem.

Components:
- dates.py: day-granularity date helpers (clock-injected "today", clamped month shifts)
- models.py: data structures (MaintenanceTask, Category, TaskStatus, Machine)
- status.py: due-status classifier (overdue / due today / upcoming / pending)
- advancer.py: next-due-date computation and completion updates
- guard.py: early-completion confirmation state machine + threshold gate
- repository.py: record-store adapter for tasks (live reads, async writes)
- machines.py: read-only machine directory
- projections.py: filters, groupings, counters and calendar events for views
"""
