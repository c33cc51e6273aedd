"""
Lifecycle state machines for accounts, projects and milestones.
"""
