"""Repository layer for the CRM.

Every function takes (session, agent_id, ...) and filters or stamps every
statement by agent_id:
- stages: list, get, create, update, delete, reorder
- contacts: list (filters + paging), get, create, update, move_stage,
            delete, search
- interactions: list, get, add (refreshes contact.last_contact_at),
                update, delete
- tasks: list (worklist order), get, add, update, complete, uncomplete,
         delete, get_overdue_tasks
- stats: pipeline_stats, activity_stats
"""
