import logging

from conftest import date, multi_select, number, people, raw_record, relation, select, status, title, uid
from workgraph.config.mappings import MappingConfig
from workgraph.ingestion.transformer import RecordTransformer
from workgraph.schemas.properties import ExternalRecord


def full_record():
    return raw_record(
        uid(1),
        Name=title("Launch"),
        Status=status(" In Progress "),
        Priority=select("Urgent"),
        Progress=number(40),
        Deadline=date("2024-06-01"),
        Owner=people({"id": "u1", "name": "Ada"}, {"id": "u2", "name": "Lin"}),
        Parent=relation(uid(9).replace("-", "")),
        Tags=multi_select("q2", "infra"),
    )


def test_transform_all_fields():
    item = RecordTransformer().transform(full_record(), "project")

    assert item.id == uid(1)
    assert item.title == "Launch"
    assert item.type == "project"
    assert item.status == "In Progress"
    assert item.priority == "P0"
    assert item.progress == 40
    assert item.due_date == "2024-06-01"
    assert item.owner.id == "u1"
    assert [a.id for a in item.assignees] == ["u1", "u2"]
    assert item.parent_id == uid(9)
    assert item.children == []
    assert item.tags == ["q2", "infra"]
    assert item.created_at == "2024-01-01T00:00:00.000Z"
    assert item.source_url.startswith("https://")


def test_defaults_for_empty_bag():
    item = RecordTransformer().transform(raw_record(uid(2)), "task")
    assert item.title == "Untitled"
    assert item.status == "Not Started"
    assert item.priority is None
    assert item.owner is None
    assert item.parent_id is None


def test_per_source_overrides():
    record = raw_record(uid(3), Headline=title("From headline"), Phase_Gate=select("Gate 2"))
    item = RecordTransformer().transform(record, "design", overrides={"title": "Headline", "status": "Phase Gate"})
    assert item.title == "From headline"
    assert item.status == "Gate 2"


def test_transform_batch_skips_records_without_bag():
    records = [
        raw_record(uid(1), Name=title("a")),
        {"id": uid(2), "properties": None},
        {"id": uid(3)},
        "garbage",
        ExternalRecord.from_raw(raw_record(uid(4), Name=title("d"))),
    ]
    items = RecordTransformer().transform_batch(records, "task")
    assert [i.title for i in items] == ["a", "d"]


def test_snapshot_logged_once_per_type(caplog):
    transformer = RecordTransformer()
    with caplog.at_level(logging.DEBUG, logger="workgraph.ingestion.transformer"):
        transformer.transform(full_record(), "project")
        transformer.transform(full_record(), "project")
        transformer.transform(full_record(), "task")

    snapshots = [r for r in caplog.records if "properties:" in r.getMessage()]
    assert len(snapshots) == 2
    assert transformer.logged_type_tags == {"project", "task"}


def test_mapping_change_resets_snapshot():
    transformer = RecordTransformer()
    transformer.transform(full_record(), "project")
    transformer.set_mapping_config(MappingConfig(title="Headline"))
    assert transformer.logged_type_tags == frozenset()
    assert transformer.default_mappings.title == "Headline"


def test_property_kind_tracking():
    transformer = RecordTransformer()
    transformer.transform(full_record(), "project")
    assert transformer.property_kind("status", "project") == "status"
    assert transformer.property_kind("Priority") == "select"
    assert transformer.property_kind("Missing") is None
