import re

import pandas as pd
import pytest

from core.client_directory import ClientDirectory
from core.errors import ClientNotFoundError


def test_lookup_by_id_and_name(directory) -> None:
    assert directory.get_client_by_id("C001").name == "John Doe"
    assert directory.get_client_by_id(" C002 ").name == "Jane Smith"
    assert directory.get_client_by_id("C999") is None
    assert directory.get_client_by_id("") is None
    assert directory.get_client_by_name("  john doe ").client_id == "C001"
    assert directory.get_client_by_name(None) is None


def test_require_client_raises_for_unknown_id(directory) -> None:
    with pytest.raises(ClientNotFoundError):
        directory.require_client("C999")


def test_lookup_by_id_ignores_case(directory) -> None:
    assert directory.get_client_by_id("c001").client_id == "C001"
    assert directory.require_client(" c002 ").name == "Jane Smith"

    assert directory.update_client("c002", {"Phone": "555-0202"})
    assert directory.get_client_by_id("C002").phone == "555-0202"


def test_client_fields_and_row_numbers(directory) -> None:
    john, jane = directory.list_clients()
    assert john.email == "john@example.com"
    assert jane.email is None
    assert john.row_number == 2
    assert jane.row_number == 3
    assert john.field("Insurance_Provider") == "Aetna"


def test_search_clients(directory) -> None:
    assert [c.client_id for c in directory.search_clients("jo")] == ["C001"]
    assert [c.client_id for c in directory.search_clients("c00")] == ["C001", "C002"]
    assert directory.search_clients("jo", exact_match=True) == []
    assert [c.client_id for c in directory.search_clients("jane smith", exact_match=True)] == ["C002"]
    assert directory.search_clients("") == []


def test_get_client_goals(directory) -> None:
    assert directory.get_client_goals("C001") == ["Reduce anxiety", "Improve sleep"]
    assert directory.get_client_goals("C002") == []
    assert directory.get_client_goals("C999") == []


def test_update_client_ignores_unknown_columns(directory) -> None:
    assert directory.update_client("C002", {"Email": "jane@example.com", "Unknown": "x"})

    jane = directory.get_client_by_id("C002")
    assert jane.email == "jane@example.com"
    assert "Unknown" not in jane.attributes


def test_update_client_rejects_bad_input(directory) -> None:
    assert not directory.update_client("C999", {"Email": "x@example.com"})
    assert not directory.update_client("C001", {})
    assert not directory.update_client("", {"Email": "x@example.com"})


def test_add_client_generates_id(directory) -> None:
    new_id = directory.add_client({"Name": "Maria Lopez", "Email": "maria@example.com"})

    assert re.match(r"^C-\d{8}-\d{3}$", new_id)
    assert directory.get_client_by_id(new_id).name == "Maria Lopez"
    assert directory.get_client_by_id(new_id).row_number == 4


def test_add_client_keeps_supplied_id(directory) -> None:
    assert directory.add_client({"ID": "C100", "Name": "Sam Lee"}) == "C100"
    assert directory.add_client("not a mapping") is None


def test_validate_client_data(directory) -> None:
    result = directory.validate_client_data({"Name": "", "Email": "not-an-email", "Phone": "call me", "Goals": "A||A"})

    assert not result.valid
    assert "Name is required" in result.errors
    assert "Invalid email format" in result.errors
    assert "Phone number format may be invalid" in result.warnings
    assert any(warning.startswith("Goals format issues") for warning in result.warnings)

    assert directory.validate_client_data({"Name": "Ok", "Email": "ok@example.com", "Phone": "(555) 010-1234"}).valid


def test_client_statistics(directory) -> None:
    stats = directory.get_client_statistics()

    assert stats["total_clients"] == 2
    assert stats["clients_with_email"] == 1
    assert stats["clients_with_goals"] == 1
    assert stats["total_goals"] == 2
    assert stats["avg_goals_per_client"] == 2.0
    assert stats["insurance_providers"] == {"Aetna": 1}


def test_load_and_save_csv(config, client_rows, tmp_path) -> None:
    source = tmp_path / "clients.csv"
    pd.DataFrame(client_rows).to_csv(source, index=False)

    directory = ClientDirectory(config, str(source))
    assert [c.client_id for c in directory.list_clients()] == ["C001", "C002"]
    assert directory.get_client_by_id("C002").field("Medical_History") == "Asthma"

    directory.update_client("C002", {"Goals": "Build routine"})
    directory.save()

    reloaded = ClientDirectory(config, str(source))
    assert reloaded.get_client_goals("C002") == ["Build routine"]
    assert reloaded.headers == list(client_rows[0].keys())


def test_missing_sheet_gives_empty_directory(config, tmp_path) -> None:
    directory = ClientDirectory(config, str(tmp_path / "missing.csv"))
    assert directory.list_clients() == []


def test_save_without_path_raises(directory) -> None:
    with pytest.raises(ValueError):
        directory.save()
