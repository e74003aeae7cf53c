"""
Acceso a la base de datos destino (PostgreSQL vía psycopg 3).
"""
