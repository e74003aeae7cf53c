"""
Constantes de la migración: tipos de entidad, tablas Airtable y carpetas
de adjuntos.
"""
from enum import Enum


class EntityType(str, Enum):
    """Tipos de entidad destino, en orden de dependencia."""
    USERS = "users"
    PROJECTS = "projects"
    ITEMS = "items"
    STATIC_INFO = "static_info"


class AirtableTable(str, Enum):
    """Tablas de la base Airtable de origen."""
    CONTACTS = "Contacts"
    TASK_LIST = "Task List"
    ITEMS_AND_PURCHASES = "Items & Purchases"
    STATIC_INFORMATION = "Static Information"


# Tabla Airtable -> pestaña de Google Sheets (en orden de escritura)
SHEET_TABLES = {
    AirtableTable.TASK_LIST.value: "Projects",
    AirtableTable.CONTACTS.value: "Contacts",
    AirtableTable.ITEMS_AND_PURCHASES.value: "Items",
    AirtableTable.STATIC_INFORMATION.value: "Static Info",
}


class AttachmentFolder(str, Enum):
    """Subcarpetas de adjuntos del job de base de datos."""
    CONTACT_ATTACHMENTS = "contact-attachments"
    PROJECT_DOCUMENTS = "project-documents"
    ITEM_IMAGES = "item-images"
    ITEM_SPEC_SHEETS = "item-spec-sheets"
    STATIC_INFO_FILES = "static-info-files"


MIGRATION_USER = "airtable_migration"
PLACEHOLDER_EMAIL_DOMAIN = "placeholder.com"
