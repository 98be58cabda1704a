from pathlib import Path

import pytest

from dr_get_dicom.application.exceptions import ConfigurationError
from dr_get_dicom.infrastructure.options import RetrieverOptions

SETTINGS = {
    "retriever": {
        "namespace": "/rdm/di/dccn",
        "collections": ["DAC_3055010.01_490"],
        "destination": "/project/3055010.01",
        "workers": 4,
        "transfer_attempts": 1,
    },
    "irods": {"iquest": "iquest", "iget": "iget", "sync_tool": "irsync"},
}


def test_settings_and_cli_are_merged():
    options = RetrieverOptions.from_sources(
        SETTINGS, {"date": "20240101", "verbose": True}
    )

    assert options.date == "20240101"
    assert options.destination == Path("/project/3055010.01")
    assert options.collections == ["DAC_3055010.01_490"]
    assert options.workers == 4
    assert options.sync_tool == "irsync"


def test_cli_destination_overrides_settings():
    options = RetrieverOptions.from_sources(
        SETTINGS, {"date": "20240101", "destination": "/tmp/raw"}
    )

    assert options.destination == Path("/tmp/raw")


@pytest.mark.parametrize("date", ["2024-01-01", "240101", "today"])
def test_malformed_date_is_rejected(date):
    with pytest.raises(ConfigurationError):
        RetrieverOptions.from_sources(SETTINGS, {"date": date})


def test_pool_size_must_be_positive():
    settings = {"retriever": dict(SETTINGS["retriever"], workers=0)}

    with pytest.raises(ConfigurationError):
        RetrieverOptions.from_sources(settings, {"date": "20240101"})


def test_missing_sections_fall_back_to_defaults():
    options = RetrieverOptions.from_sources(
        {}, {"date": "20240101", "destination": "/data"}
    )

    assert options.workers == 4
    assert options.transfer_attempts == 1
    assert options.iget == "iget"
