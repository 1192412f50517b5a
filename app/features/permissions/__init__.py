"""
Authorization engine.

Role grant tables, management hierarchy resolution, scope filters for list
queries and access checks for single records, all scoped to one
organization.
"""
