"""
Configuracion central de airbridge.
Gestiona variables de entorno para los jobs de migracion (Airtable -> Postgres)
y de sincronizacion (Airtable -> Google Sheets/Drive).
"""
from typing import Iterable
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field

from airbridge.shared.exceptions.domain import ConfigurationError


class Settings(BaseSettings):
    """
    Clase de configuracion del pipeline.
    Lee variables de entorno (o .env) y proporciona valores por defecto.

    Ningun valor es obligatorio a nivel de clase: cada job valida lo que
    necesita con `require()`, asi el job de Sheets no exige DATABASE_URL
    y viceversa.
    """

    APP_NAME: str = Field(default="airbridge")
    APP_VERSION: str = Field(default="1.0.0")

    # Airtable
    AIRTABLE_TOKEN: str = Field(default="")
    AIRTABLE_BASE_ID: str = Field(default="")
    AIRTABLE_API_URL: str = Field(default="https://api.airtable.com/v0")
    AIRTABLE_PAGE_SIZE: int = Field(default=100)
    AIRTABLE_TIMEOUT_S: int = Field(default=30)
    # 0 = sin reintentos: un error de lectura aborta la corrida
    AIRTABLE_MAX_RETRIES: int = Field(default=0)

    # Base de datos destino
    DATABASE_URL: str = Field(default="")
    MIGRATION_ASSUME_YES: bool = Field(default=False)

    # Google Sheets / Drive
    GOOGLE_SHEETS_ID: str = Field(default="")
    GOOGLE_DRIVE_FOLDER_ID: str = Field(default="")
    GOOGLE_SERVICE_ACCOUNT_EMAIL: str = Field(default="")
    GOOGLE_PRIVATE_KEY: str = Field(default="")
    GOOGLE_SERVICE_ACCOUNT_FILE: str = Field(default="")

    # Adjuntos
    ATTACHMENT_FALLBACK_TO_SOURCE_URL: bool = Field(default=True)
    ATTACHMENT_DOWNLOAD_TIMEOUT_S: int = Field(default=60)

    # Formato de hojas
    SHEET_ROW_HEIGHT_PX: int = Field(default=100)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/airbridge.log")

    @computed_field
    @property
    def google_private_key(self) -> str:
        """
        Private key del service account con los saltos de linea reales.
        En .env suele venir escapada como '\\n'.
        """
        return self.GOOGLE_PRIVATE_KEY.replace("\\n", "\n")

    @computed_field
    @property
    def has_google_credentials(self) -> bool:
        """Indica si hay credenciales de service account (inline o archivo)."""
        inline = bool(self.GOOGLE_SERVICE_ACCOUNT_EMAIL and self.GOOGLE_PRIVATE_KEY)
        return inline or bool(self.GOOGLE_SERVICE_ACCOUNT_FILE)

    def require(self, *names: str) -> None:
        """
        Valida que las variables indicadas tengan valor.

        Raises:
            ConfigurationError: con la lista completa de variables faltantes
        """
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            raise ConfigurationError(
                f"Faltan variables de entorno obligatorias: {', '.join(missing)}",
                missing=missing,
            )

    def require_google_credentials(self) -> None:
        if not self.has_google_credentials:
            raise ConfigurationError(
                "Faltan credenciales de Google. Define GOOGLE_SERVICE_ACCOUNT_EMAIL y "
                "GOOGLE_PRIVATE_KEY, o GOOGLE_SERVICE_ACCOUNT_FILE",
                missing=_missing_google_vars(self),
            )

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def _missing_google_vars(cfg: Settings) -> Iterable[str]:
    for name in ("GOOGLE_SERVICE_ACCOUNT_EMAIL", "GOOGLE_PRIVATE_KEY"):
        if not getattr(cfg, name):
            yield name


# Instancia global de configuracion
settings = Settings()
