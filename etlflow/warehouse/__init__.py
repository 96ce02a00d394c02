"""
Relational destination support (PostgreSQL via psycopg 3).
"""
