"""
Integración con Google Sheets (destino tabular) y Google Drive (adjuntos).
"""
