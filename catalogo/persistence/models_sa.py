"""
Définition de la table `books` pour les deux moteurs SQL.

La table est décrite avec SQLAlchemy Core. Chaque colonne porte une clé
Python fixe (`image_urls`, `condizioni_libro`, ...) et un nom SQL propre
au moteur :

- SQLite conserve les noms historiques en casse mixte (`imageUrls`) ;
- PostgreSQL replie les identifiants non quotés en minuscules, les noms
  sont donc déclarés en minuscules (`imageurls`) pour rester compatibles
  avec les bases créées par l'ancienne version de l'application.

Les colonnes tableau sont du TEXT contenant du JSON sous SQLite et du
JSONB natif sous PostgreSQL.
"""

from __future__ import annotations

from sqlalchemy import REAL, TIMESTAMP, Column, Integer, MetaData, Table, Text, text
from sqlalchemy.dialects.postgresql import JSONB

from .kinds import BackendKind

TABLE_NAME = "books"

# (clé Python, nom SQL historique, type) dans l'ordre de création des colonnes.
# Le type "array" et "timestamp" dépendent du moteur.
_COLUMNS = (
    ("titolo", "titolo", "text"),
    ("autore", "autore", "text"),
    ("editore", "editore", "text"),
    ("anno", "anno", "text"),
    ("isbn", "isbn", "text"),
    ("prezzo", "prezzo", "real"),
    ("lingua", "lingua", "text"),
    ("descrizione", "descrizione", "text"),
    ("categoria", "categoria", "text"),
    ("sottocategoria1", "sottocategoria1", "text"),
    ("sottocategoria2", "sottocategoria2", "text"),
    ("image_urls", "imageUrls", "array"),
    ("timestamp", "timestamp", "timestamp"),
    ("confidence", "confidence", "real"),
    ("descrizione_ai", "descrizioneAI", "text"),
    ("categories_ai", "categoriesAI", "array"),
    ("condizioni_libro", "condizioniLibro", "text"),
    ("additional_copies", "additionalCopies", "array"),
)

# Colonnes renseignées par un INSERT : tout sauf `id` (18 valeurs).
INSERT_FIELDS = tuple(key for key, _, _ in _COLUMNS)

# Colonnes remplacées par un UPDATE : `id` et `timestamp` sont immuables.
UPDATE_FIELDS = tuple(key for key in INSERT_FIELDS if key != "timestamp")

ARRAY_FIELDS = ("image_urls", "categories_ai", "additional_copies")

# Colonnes ajoutées après la première version du schéma SQLite,
# avec le type utilisé pour l'ALTER TABLE.
OPTIONAL_COLUMNS = (
    ("confidence", "REAL"),
    ("descrizioneAI", "TEXT"),
    ("categoriesAI", "TEXT"),
    ("sottocategoria1", "TEXT"),
    ("sottocategoria2", "TEXT"),
    ("condizioniLibro", "TEXT"),
    ("additionalCopies", "TEXT"),
)


def column_name(sql_name: str, kind: BackendKind) -> str:
    """Retourne le nom SQL effectif d'une colonne pour un moteur donné."""
    return sql_name.lower() if kind is BackendKind.SERVER else sql_name


def build_books_table(kind: BackendKind, metadata: MetaData | None = None) -> Table:
    """
    Construit la table `books` adaptée au moteur.

    Args:
        kind: Le moteur cible.
        metadata: Le MetaData auquel rattacher la table (nouveau si None).

    Returns:
        Table: La table, dont `table.c` est indexé par les clés Python.
    """
    metadata = metadata if metadata is not None else MetaData()
    server = kind is BackendKind.SERVER
    types = {
        "text": Text,
        "real": REAL,
        "array": JSONB if server else Text,
        "timestamp": TIMESTAMP(timezone=True) if server else Text,
    }

    columns = [Column("id", Integer, primary_key=True, autoincrement=True)]
    for key, sql_name, type_name in _COLUMNS:
        columns.append(
            Column(
                column_name(sql_name, kind),
                types[type_name],
                key=key,
                nullable=key not in ("titolo", "autore"),
                server_default=text("CURRENT_TIMESTAMP") if key == "timestamp" else None,
            )
        )

    table_kwargs = {} if server else {"sqlite_autoincrement": True}
    return Table(TABLE_NAME, metadata, *columns, **table_kwargs)
