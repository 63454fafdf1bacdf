"""Service d'exportation du catalogue vers des formats de fichiers standards.

Ce module produit le document de sauvegarde JSON (`exportedAt`,
`totalBooks`, `books`) et les exports tabulaires CSV / XLSX, dans lesquels
les champs tableau sont aplatis en texte.
"""

from __future__ import annotations

import csv
import json
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from openpyxl import Workbook
from openpyxl.styles import Font

from .types import AdditionalCopy, Book
from .utils import utc_now

ExportFormat = Literal["json", "csv", "xlsx"]

SHEET_NAME = "Catalogo Libri"

# (en-tête, fonction d'extraction) pour les exports tabulaires
EXPORT_COLUMNS = (
    ("ID", lambda b: b.id),
    ("Titolo", lambda b: b.titolo),
    ("Autore", lambda b: b.autore),
    ("Editore", lambda b: b.editore),
    ("Anno", lambda b: b.anno),
    ("ISBN", lambda b: b.isbn),
    ("Prezzo", lambda b: b.prezzo),
    ("Lingua", lambda b: b.lingua),
    ("Descrizione", lambda b: b.descrizione),
    ("Categoria", lambda b: b.categoria),
    ("Sottocategoria 1", lambda b: b.sottocategoria1),
    ("Sottocategoria 2", lambda b: b.sottocategoria2),
    ("Condizioni", lambda b: b.condizioni_libro),
    ("Confidenza AI", lambda b: b.confidence),
    ("Descrizione AI", lambda b: b.descrizione_ai),
    ("Categorie AI", lambda b: ", ".join(b.categories_ai)),
    ("Copie aggiuntive", lambda b: format_copies(b.additional_copies)),
    ("Immagini", lambda b: ", ".join(b.image_urls)),
    ("Data inserimento", lambda b: b.timestamp.isoformat() if b.timestamp else None),
)

EXPORT_HEADERS = [header for header, _ in EXPORT_COLUMNS]


def format_copies(copies: Sequence[AdditionalCopy]) -> str:
    """Aplatit les exemplaires supplémentaires : "anno/prezzo/condizioni; ..."."""
    parts = []
    for copy in copies:
        values = (copy.anno, copy.prezzo, copy.condizioni_libro)
        parts.append("/".join("" if v is None else str(v) for v in values))
    return "; ".join(parts)


def book_rows(books: Sequence[Book]) -> list[list[Any]]:
    """Convertit les livres en lignes alignées sur `EXPORT_HEADERS`."""
    return [[extract(book) for _, extract in EXPORT_COLUMNS] for book in books]


def build_backup_document(
    books: Sequence[Book], exported_at: datetime | None = None
) -> dict[str, Any]:
    """Construit le document de sauvegarde JSON du catalogue."""
    exported_at = exported_at or utc_now()
    return {
        "exportedAt": exported_at.isoformat(),
        "totalBooks": len(books),
        "books": [book.to_dict() for book in books],
    }


def export_books_to_json(filepath: Path, books: Sequence[Book]) -> None:
    """Écrit le document de sauvegarde JSON (indenté, UTF-8)."""
    document = build_backup_document(books)
    with filepath.open("w", encoding="utf-8") as f:
        json.dump(document, f, ensure_ascii=False, indent=2)


def export_data_to_csv(
    filepath: Path, headers: list[str], data: Sequence[Sequence[Any]]
) -> None:
    """Exporte des données vers un fichier CSV.

    Args:
        filepath: Chemin du fichier de destination.
        headers: Liste des en-têtes de colonnes.
        data: Données à exporter (liste de listes/tuples).

    Raises:
        IOError: Si l'écriture dans le fichier échoue.
    """
    with filepath.open("w", newline="", encoding="utf-8-sig") as csvfile:
        writer = csv.writer(csvfile, delimiter=";")
        writer.writerow(headers)
        for row in data:
            writer.writerow(["" if value is None else value for value in row])


def export_data_to_xlsx(
    filepath: Path,
    headers: list[str],
    data: Sequence[Sequence[Any]],
    sheet_name: str = SHEET_NAME,
) -> None:
    """Exporte des données vers un fichier Excel XLSX.

    Args:
        filepath: Chemin du fichier de destination.
        headers: Liste des en-têtes de colonnes.
        data: Données à exporter (liste de listes/tuples).
        sheet_name: Nom de la feuille Excel.

    Raises:
        IOError: Si l'écriture dans le fichier échoue.
    """
    workbook = Workbook()
    sheet = workbook.active
    if sheet is None:
        msg = "Unable to create Excel worksheet"
        raise RuntimeError(msg)
    sheet.title = sheet_name

    # En-têtes en gras
    for col_idx, header in enumerate(headers, start=1):
        cell = sheet.cell(row=1, column=col_idx, value=header)
        cell.font = Font(bold=True)

    for row_idx, row_data in enumerate(data, start=2):
        for col_idx, value in enumerate(row_data, start=1):
            sheet.cell(row=row_idx, column=col_idx, value=value)

    workbook.save(filepath)


def export_books(filepath: Path, books: Sequence[Book], file_format: ExportFormat) -> None:
    """Exporte le catalogue vers JSON, CSV ou XLSX selon le format spécifié.

    Raises:
        ValueError: Si le format est invalide.
        IOError: Si l'écriture échoue.
    """
    if file_format == "json":
        export_books_to_json(filepath, books)
    elif file_format == "csv":
        export_data_to_csv(filepath, EXPORT_HEADERS, book_rows(books))
    elif file_format == "xlsx":
        export_data_to_xlsx(filepath, EXPORT_HEADERS, book_rows(books))
    else:
        msg = f"Format non supporté : {file_format}"
        raise ValueError(msg)
