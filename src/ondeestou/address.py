"""Standardized Brazilian address and extraction from reverse geocoding data."""

import re
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

_SIGLA_UF_RE = re.compile(r"^BR-([A-Z]{2})$")
_TWO_LETTER_RE = re.compile(r"^[A-Z]{2}$")


@dataclass(frozen=True)
class AddressSnapshot:
    """
    Standardized address.

    Every field is optional except ``pais``. Instances are never mutated once
    built; use ``dataclasses.replace`` to derive a modified copy.
    """
    logradouro: Optional[str] = None
    numero: Optional[str] = None
    bairro: Optional[str] = None
    municipio: Optional[str] = None
    regiao_metropolitana: Optional[str] = None
    uf: Optional[str] = None
    sigla_uf: Optional[str] = None
    cep: Optional[str] = None
    pais: str = "Brasil"

    def endereco_completo(self) -> str:
        """Single-line address, skipping absent parts."""
        street = self.logradouro
        if street and self.numero:
            street = f"{street}, {self.numero}"
        city = self.municipio
        if city and (self.sigla_uf or self.uf):
            city = f"{city}/{self.sigla_uf or self.uf}"
        parts = [street, self.bairro, city, self.cep]
        return ", ".join(part for part in parts if part)


def _address_fields(raw: Any) -> Optional[Mapping[str, Any]]:
    if not isinstance(raw, Mapping):
        return None
    address = raw.get("address")
    if not isinstance(address, Mapping):
        return None
    return address


def _first(address: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = address.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def extract_sigla_uf(iso3166_code: Any) -> Optional[str]:
    """Return the state abbreviation from an ISO 3166-2 code like 'BR-PE'."""
    if not isinstance(iso3166_code, str):
        return None
    match = _SIGLA_UF_RE.match(iso3166_code)
    return match.group(1) if match else None


def extract_address(raw: Any) -> AddressSnapshot:
    """
    Build an AddressSnapshot from a Nominatim-style record.

    Accepts ``{"address": {...}}`` with either Nominatim keys (road, suburb,
    city, ...) or OSM tags (addr:street, addr:city, ...). Never raises:
    missing or malformed input yields a snapshot with empty fields.
    """
    address = _address_fields(raw)
    if address is None:
        logger.debug("No address data to extract")
        return AddressSnapshot()

    uf = _first(address, "addr:state", "state")
    sigla_uf = address.get("state_code") or extract_sigla_uf(address.get("ISO3166-2-lvl4"))
    # Some sources put the abbreviation in the state field itself
    if uf and _TWO_LETTER_RE.match(uf):
        sigla_uf = uf

    country = _first(address, "country")
    pais = "Brasil" if country in (None, "Brasil", "Brazil") else country

    return AddressSnapshot(
        logradouro=_first(address, "addr:street", "road", "street", "pedestrian"),
        numero=_first(address, "addr:housenumber", "house_number"),
        bairro=_first(address, "addr:neighbourhood", "neighbourhood", "suburb", "quarter"),
        # hamlet is a subdivision of a municipality, not a municipality
        municipio=_first(address, "addr:city", "city", "town", "municipality", "village"),
        regiao_metropolitana=_first(address, "metropolitan_region", "region"),
        uf=uf,
        sigla_uf=sigla_uf or None,
        cep=_first(address, "addr:postcode", "postcode"),
        pais=pais,
    )


def bairro_completo(raw: Any) -> Optional[str]:
    """Full neighborhood name, combining neighbourhood and suburb when both differ."""
    address = _address_fields(raw)
    if address is None:
        return None
    neighbourhood = _first(address, "neighbourhood")
    suburb = _first(address, "suburb")
    if neighbourhood and suburb and neighbourhood != suburb:
        return f"{neighbourhood}, {suburb}"
    return neighbourhood or suburb or _first(address, "quarter")


def generate_cache_key(raw: Any) -> Optional[str]:
    """
    Derive the cache key for a raw address record.

    Joins the non-empty identity components (street, number, neighborhood,
    municipality, postal code, country code) with '|' in a fixed order.
    Returns None when no component is available.
    """
    address = _address_fields(raw)
    if address is None:
        return None

    components = [
        _first(address, "road", "street"),
        _first(address, "house_number"),
        _first(address, "neighbourhood", "suburb"),
        _first(address, "city", "town", "municipality"),
        _first(address, "postcode"),
        _first(address, "country_code"),
    ]
    key = "|".join(component for component in components if component)
    return key or None
