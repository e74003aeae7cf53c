"""
Integración con Airtable: lectura paginada, metadata de schema y tipos.

Este paquete está diseñado para ejecutarse desde jobs batch (scripts/),
no como parte de un request/response.
"""
