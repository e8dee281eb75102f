"""
QloudSound API - Published catalog seed

Tracks already released by QloudSound.  They are inserted with
``INSERT OR IGNORE`` the first time the catalog is listed, so rows that
already exist are never overwritten or duplicated.

``submitted_at`` values are fixed constants: they only decide the order of
the published list and must not drift between process restarts.
"""

from typing import List

from qloudsound.models import CatalogEntry

PUBLISHED_TRACKS: List[CatalogEntry] = [
    CatalogEntry(
        id="catalog-1",
        title="Ginebra balla amb el sol",
        status="published",
        isrc="QT6EF2576934",
        upc="199956616165",
        submitted_at="2025-01-01T00:00:00.000Z",
    ),
    CatalogEntry(
        id="catalog-2",
        title="Fuego Callejero",
        status="published",
        isrc="QT6EG2578923",
        upc="199955965677",
        submitted_at="2025-01-01T00:00:01.000Z",
    ),
    CatalogEntry(
        id="catalog-3",
        title="Nos besamos y nos olvidamos",
        status="published",
        isrc="QT6EG2578924",
        upc="199955965707",
        submitted_at="2025-01-01T00:00:02.000Z",
    ),
    CatalogEntry(
        id="catalog-4",
        title="Ya está bien",
        status="published",
        isrc="QT6EG2586747",
        upc="199955961914",
        submitted_at="2025-01-01T00:00:03.000Z",
    ),
    CatalogEntry(
        id="catalog-5",
        title="Más pija que yo",
        status="published",
        isrc="QT6EG2586748",
        upc="199955961921",
        submitted_at="2025-01-01T00:00:04.000Z",
    ),
    CatalogEntry(
        id="catalog-6",
        title="Ciego por tu luz",
        status="published",
        isrc="QT6ET2502320",
        upc="199955955654",
        submitted_at="2025-01-01T00:00:05.000Z",
    ),
]
