"""Tests for address cache and field change detection."""

import pytest
from unittest.mock import Mock

from ondeestou.address import AddressSnapshot
from ondeestou.address_cache import AddressCache, ChangeDetails


def raw_address(city, road="Rua Principal", suburb=None, state="Pernambuco"):
    address = {"road": road, "city": city, "state": state, "country_code": "br"}
    if suburb:
        address["suburb"] = suburb
    return {"address": address}


@pytest.fixture
def address_cache(clock):
    """Create address cache with fake clock."""
    return AddressCache(max_size=5, expiration_ms=300000, clock=clock)


def test_resolve_extracts_and_caches(address_cache):
    """Test miss extracts and stores."""
    address = address_cache.resolve(raw_address("Recife"))

    assert address.municipio == "Recife"
    assert address_cache.size == 1
    assert address_cache.current is address
    assert address_cache.previous is None


def test_cache_hit_skips_extraction(clock):
    """Test extractor is not called again on a hit."""
    extractor = Mock(return_value=AddressSnapshot(municipio="Recife"))
    address_cache = AddressCache(extractor=extractor, clock=clock)

    first = address_cache.resolve(raw_address("Recife"))
    second = address_cache.resolve(raw_address("Recife"))

    assert extractor.call_count == 1
    assert first is second


def test_expired_entry_extracted_again(clock):
    """Test expired entries are re-extracted."""
    extractor = Mock(return_value=AddressSnapshot(municipio="Recife"))
    address_cache = AddressCache(expiration_ms=1000, extractor=extractor, clock=clock)

    address_cache.resolve(raw_address("Recife"))
    clock.advance(2000)
    address_cache.resolve(raw_address("Recife"))

    assert extractor.call_count == 2


def test_null_key_not_cached(address_cache):
    """Test records without identity are extracted but not cached."""
    callback = Mock()
    address_cache.set_field_change_callback("municipio", callback)

    address = address_cache.resolve({"address": {"state": "PE"}})

    assert address.uf == "PE"
    assert address_cache.size == 0
    assert address_cache.current is None
    callback.assert_not_called()


def test_malformed_input_returns_empty_snapshot(address_cache):
    """Test malformed input does not raise."""
    assert address_cache.resolve(None) == AddressSnapshot()
    assert address_cache.resolve("garbage") == AddressSnapshot()


def test_first_resolution_notifies(address_cache):
    """Test first address counts as change from nothing."""
    callback = Mock()
    address_cache.set_field_change_callback("municipio", callback)

    address_cache.resolve(raw_address("Recife"))

    callback.assert_called_once()
    details = callback.call_args[0][0]
    assert isinstance(details, ChangeDetails)
    assert details.has_changed
    assert details.previous["municipio"] is None
    assert details.current["municipio"] == "Recife"
    assert details.current["uf"] == "Pernambuco"


def test_oscillating_transitions_each_notified(address_cache):
    """Test A, B, A, B notifies every transition."""
    callback = Mock()
    address_cache.set_field_change_callback("municipio", callback)

    for city in ("Recife", "Olinda", "Recife", "Olinda"):
        address_cache.resolve(raw_address(city, road=f"Rua de {city}"))

    assert callback.call_count == 4
    transitions = [
        (c[0][0].previous["municipio"], c[0][0].current["municipio"])
        for c in callback.call_args_list
    ]
    assert transitions == [
        (None, "Recife"),
        ("Recife", "Olinda"),
        ("Olinda", "Recife"),
        ("Recife", "Olinda"),
    ]


def test_repeated_same_value_not_notified(address_cache):
    """Test B, B, B only notifies once."""
    callback = Mock()
    address_cache.set_field_change_callback("municipio", callback)

    for _ in range(3):
        address_cache.resolve(raw_address("Olinda"))

    assert callback.call_count == 1


def test_identical_transition_deduplicated(address_cache):
    """Test a transition equal to the last notified one is suppressed."""
    callback = Mock()
    address_cache.set_field_change_callback("municipio", callback)
    address_cache.resolve(raw_address("Recife"))
    address_cache.resolve(raw_address("Olinda"))
    assert callback.call_count == 2

    # Olinda=>Recife happens while nobody listens, so it is never notified
    address_cache.set_field_change_callback("municipio", None)
    address_cache.resolve(raw_address("Recife"))
    address_cache.set_field_change_callback("municipio", callback)

    address_cache.resolve(raw_address("Olinda"))

    assert callback.call_count == 2
    assert address_cache.last_notified_signature("municipio") == "Recife=>Olinda"


def test_fields_detected_independently(address_cache):
    """Test street change does not notify municipality."""
    logradouro = Mock()
    bairro = Mock()
    municipio = Mock()
    address_cache.set_field_change_callback("logradouro", logradouro)
    address_cache.set_field_change_callback("bairro", bairro)
    address_cache.set_field_change_callback("municipio", municipio)

    address_cache.resolve(raw_address("Recife", road="Rua A", suburb="Boa Vista"))
    address_cache.resolve(raw_address("Recife", road="Rua B", suburb="Boa Vista"))

    assert logradouro.call_count == 2
    assert bairro.call_count == 1
    assert municipio.call_count == 1
    details = logradouro.call_args[0][0]
    assert details.previous == {"logradouro": "Rua A"}
    assert details.current == {"logradouro": "Rua B"}


def test_bairro_details_include_full_name(address_cache):
    """Test bairro change details carry the full neighborhood name."""
    callback = Mock()
    address_cache.set_field_change_callback("bairro", callback)

    raw = {"address": {"road": "Rua X", "neighbourhood": "Torre", "suburb": "Madalena", "city": "Recife"}}
    address_cache.resolve(raw)

    details = callback.call_args[0][0]
    assert details.current["bairro"] == "Torre"
    assert details.current["bairro_completo"] == "Torre, Madalena"


def test_callback_error_does_not_propagate(address_cache):
    """Test failing callback is logged, other fields still notified."""
    address_cache.set_field_change_callback("logradouro", Mock(side_effect=RuntimeError("boom")))
    municipio = Mock()
    address_cache.set_field_change_callback("municipio", municipio)

    address = address_cache.resolve(raw_address("Recife"))

    assert address.municipio == "Recife"
    municipio.assert_called_once()


def test_history_updates_without_callbacks(address_cache):
    """Test previous/current advance even when nothing is notified."""
    address_cache.resolve(raw_address("Recife"))
    address_cache.resolve(raw_address("Olinda"))

    assert address_cache.previous.municipio == "Recife"
    assert address_cache.current.municipio == "Olinda"
    assert address_cache.current_raw["address"]["city"] == "Olinda"
    assert address_cache.last_notified_signature("municipio") is None


def test_callback_registration_validation(address_cache):
    """Test invalid registrations raise."""
    with pytest.raises(ValueError):
        address_cache.set_field_change_callback("cep", Mock())
    with pytest.raises(TypeError):
        address_cache.set_field_change_callback("bairro", "not callable")


def test_unregister_callback(address_cache):
    """Test None clears a callback."""
    callback = Mock()
    address_cache.set_field_change_callback("municipio", callback)
    address_cache.set_field_change_callback("municipio", None)

    address_cache.resolve(raw_address("Recife"))

    callback.assert_not_called()
    assert address_cache.get_field_change_callback("municipio") is None


def test_eviction_when_full(clock):
    """Test oldest address evicted at capacity."""
    address_cache = AddressCache(max_size=2, clock=clock)
    address_cache.resolve(raw_address("Recife"))
    address_cache.resolve(raw_address("Olinda"))
    address_cache.resolve(raw_address("Paulista"))

    assert address_cache.size == 2
    assert not address_cache.cache.has("Rua Principal|Recife|br")
    assert address_cache.cache.has("Rua Principal|Paulista|br")


def test_clean_expired(address_cache, clock):
    """Test explicit sweep."""
    address_cache.resolve(raw_address("Recife"))
    clock.advance(300001)
    assert address_cache.clean_expired() == 1
    assert address_cache.size == 0


def test_clear(address_cache):
    """Test clear resets history."""
    address_cache.resolve(raw_address("Recife"))
    address_cache.clear()

    assert address_cache.size == 0
    assert address_cache.current is None
    assert address_cache.previous is None
