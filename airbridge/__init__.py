"""
airbridge: migración Airtable -> PostgreSQL y sincronización Airtable -> Google Sheets.

Objetivos de diseño:
- Reemplazo completo: cada corrida de la migración deja la base igual que Airtable.
- Idempotencia de adjuntos: un archivo se transfiere como máximo una vez.
- Degradación explícita: lo cosmético se reporta como warning, no aborta.
"""

__version__ = "1.0.0"
