"""Version et informations de l'application Catalogo Libri."""

__version__ = "1.0.0"
__app_name__ = "Catalogo Libri"
__description__ = "Catalogo personale di libri con doppio backend SQLite / PostgreSQL"
