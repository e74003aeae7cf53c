"""
Construcción de clientes de Google (Sheets v4 y Drive v3) con service account.
"""
from __future__ import annotations

from typing import Any

from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build

from airbridge.core.config import Settings

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

TOKEN_URI = "https://oauth2.googleapis.com/token"


def build_credentials(cfg: Settings) -> Credentials:
    """
    Credenciales del service account.
    Prioriza GOOGLE_SERVICE_ACCOUNT_FILE; si no, usa email + private key inline.
    """
    cfg.require_google_credentials()
    if cfg.GOOGLE_SERVICE_ACCOUNT_FILE:
        return Credentials.from_service_account_file(cfg.GOOGLE_SERVICE_ACCOUNT_FILE, scopes=SCOPES)

    info = {
        "type": "service_account",
        "client_email": cfg.GOOGLE_SERVICE_ACCOUNT_EMAIL,
        "private_key": cfg.google_private_key,
        "token_uri": TOKEN_URI,
    }
    return Credentials.from_service_account_info(info, scopes=SCOPES)


def build_sheets_service(credentials: Credentials) -> Any:
    return build("sheets", "v4", credentials=credentials, cache_discovery=False)


def build_drive_service(credentials: Credentials) -> Any:
    return build("drive", "v3", credentials=credentials, cache_discovery=False)
