"""
End-to-end tests of the import session over real zip bundles.
"""

import os

import pytest
from sqlalchemy.exc import OperationalError

from labimport.core.errors import (
    ArchiveExtractionFailed, ArchiveUnreadable, InvalidRecord, ManifestMalformed,
    ManifestMissing, PersistenceFailed, SessionStateError,
)
from labimport.database.models import Experiment, Item, Tag, TagLink, Upload
from labimport.ingestion.manifest import ImportKind
from labimport.ingestion.session import ImportSession, SessionState, import_archive, preview_archive


def item(title, **fields):
    data = {"title": title, "body": f"<p>{title}</p>", "date": "20170131", "category": "Plasmid"}
    data.update(fields)
    return data


def experiment(title, **fields):
    data = {"title": title, "body": "", "date": "20170201", "elabid": f"20170201-{title}"}
    data.update(fields)
    return data


def leftover_dirs(settings):
    if not settings.tmp_dir.exists():
        return []
    return list(settings.tmp_dir.iterdir())


def test_imports_every_record(db, context, settings, make_archive):
    archive = make_archive([item("pUC19"), item("pET28"), item("pGEX")])

    result = ImportSession(archive, context, 1, db, settings=settings).run()

    assert result.inserted == 3
    assert result.kind == ImportKind.ITEMS
    assert result.state == SessionState.FINISHED
    rows = db.query(Item).order_by(Item.id).all()
    assert [(r.title, r.body) for r in rows] == [
        ("pUC19", "<p>pUC19</p>"), ("pET28", "<p>pET28</p>"), ("pGEX", "<p>pGEX</p>"),
    ]
    assert [e.id for e in result.entities] == [r.id for r in rows]
    assert leftover_dirs(settings) == []


def test_session_states(db, context, settings, make_archive):
    session = ImportSession(make_archive([item("a")]), context, 1, db, settings=settings)
    assert session.state == SessionState.CREATED

    session.run()

    assert session.state == SessionState.TORN_DOWN
    assert session.outcome == SessionState.FINISHED
    assert session.kind == ImportKind.ITEMS


def test_attachments_tags_and_gaps(db, context, settings, make_archive):
    archive = make_archive(
        [item("Sample/Test #1", tags="a|b|c", uploads=[
            {"real_name": "map.gb", "comment": "map"},
            {"real_name": "trace.ab1"},
            {"real_name": "renamed.pdf"},
        ])],
        files={
            "Plasmid - Sample_Test_1/map.gb": b"LOCUS",
            "Plasmid - Sample_Test_1/trace.ab1": b"ABIF",
        },
    )

    result = ImportSession(archive, context, 1, db, settings=settings).run()

    assert result.inserted == 1
    assert result.attached == 2
    assert result.skipped_attachments == 1
    assert sorted(u.real_name for u in db.query(Upload).all()) == ["map.gb", "trace.ab1"]
    assert [t.tag for t in db.query(Tag).order_by(Tag.id)] == ["a", "b", "c"]
    assert db.query(TagLink).count() == 3
    assert len([p for p in settings.uploads_dir.rglob("*") if p.is_file()]) == 2


def test_first_record_routes_all_to_experiments(db, context, settings, make_archive):
    later = experiment("second")
    del later["elabid"]
    archive = make_archive([experiment("first"), later])

    result = ImportSession(archive, context, 42, db, settings=settings).run()

    assert result.kind == ImportKind.EXPERIMENTS
    assert result.inserted == 2
    assert db.query(Item).count() == 0
    rows = db.query(Experiment).order_by(Experiment.id).all()
    assert [r.elabid for r in rows] == ["20170201-first", None]
    assert all(r.userid == 42 and r.status == 3 for r in rows)


def test_experiment_attachments_use_date_folder(db, context, settings, make_archive):
    archive = make_archive(
        [experiment("Run 1", uploads=[{"real_name": "plot.png"}])],
        files={"20170201-Run_1/plot.png": b"PNG"},
    )

    result = ImportSession(archive, context, 42, db, settings=settings).run()

    assert result.attached == 1
    assert db.query(Upload).one().type == "experiments"


def test_strict_settings_reject_mixed_manifest(db, context, settings, make_archive):
    archive = make_archive([experiment("first"), item("second")])
    strict = settings.model_copy(update={"strict_manifest": True})

    with pytest.raises(ManifestMalformed):
        ImportSession(archive, context, 42, db, settings=strict).run()

    assert db.query(Experiment).count() == 0
    assert leftover_dirs(settings) == []


def test_corrupt_archive(db, context, settings, tmp_path):
    corrupt = tmp_path / "corrupt.zip"
    corrupt.write_bytes(b"PK\x03\x04 definitely not a full archive")

    with pytest.raises(ArchiveUnreadable) as excinfo:
        ImportSession(corrupt, context, 1, db, settings=settings).run()

    assert excinfo.value.phase == "validate"
    assert excinfo.value.inserted == 0
    assert db.query(Item).count() == 0
    assert leftover_dirs(settings) == []


def test_unsafe_archive_is_removed_after_failed_extraction(db, context, settings, make_archive):
    archive = make_archive([item("a")], files={"../../outside.txt": b"x"})

    with pytest.raises(ArchiveExtractionFailed) as excinfo:
        ImportSession(archive, context, 1, db, settings=settings).run()

    assert excinfo.value.phase == "extract"
    assert leftover_dirs(settings) == []


def test_missing_manifest(db, context, settings, make_archive):
    archive = make_archive(None, files={"readme.txt": b"hello"})

    with pytest.raises(ManifestMissing) as excinfo:
        ImportSession(archive, context, 1, db, settings=settings).run()

    assert excinfo.value.phase == "manifest"
    assert leftover_dirs(settings) == []


def test_invalid_record_aborts_session(db, context, settings, make_archive):
    broken = item("broken")
    del broken["body"]
    archive = make_archive([item("ok"), broken, item("never")])

    with pytest.raises(InvalidRecord) as excinfo:
        ImportSession(archive, context, 1, db, settings=settings).run()

    assert excinfo.value.phase == "import"
    assert excinfo.value.inserted == 1
    assert excinfo.value.index == 1
    assert [i.title for i in db.query(Item).all()] == ["ok"]
    assert leftover_dirs(settings) == []


def test_persistence_failure_aborts_session(db, context, settings, make_archive, monkeypatch):
    archive = make_archive([item("one"), item("two"), item("three")])
    real_flush = db.flush
    calls = {"n": 0}

    def flaky_flush(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 2:
            raise OperationalError("INSERT INTO items", {}, Exception("server closed the connection"))
        return real_flush(*args, **kwargs)

    monkeypatch.setattr(db, "flush", flaky_flush)

    with pytest.raises(PersistenceFailed) as excinfo:
        ImportSession(archive, context, 1, db, settings=settings).run()

    assert excinfo.value.inserted == 1
    assert calls["n"] == 2
    assert [i.title for i in db.query(Item).all()] == ["one"]
    assert leftover_dirs(settings) == []


def test_session_runs_once(db, context, settings, make_archive):
    session = ImportSession(make_archive([item("a")]), context, 1, db, settings=settings)
    session.run()

    with pytest.raises(SessionStateError):
        session.run()


def test_concurrent_sessions_use_distinct_directories(db, context, settings, make_archive):
    archive = make_archive([item("a")])

    first = ImportSession(archive, context, 1, db, settings=settings)
    second = ImportSession(archive, context, 1, db, settings=settings)

    assert first.tmp_path != second.tmp_path
    assert first.tmp_path.parent == settings.tmp_dir


def test_import_archive_helper(db, context, settings, make_archive):
    result = import_archive(make_archive([item("a"), item("b")]), context, 1, db, settings=settings)

    assert result.inserted == 2


def test_preview_does_not_touch_database(db, settings, make_archive):
    archive = make_archive(
        [item("x", uploads=[{"real_name": "f.txt"}, {"real_name": "g.txt"}])],
        files={"Plasmid - x/f.txt": b"f"},
    )

    manifest, attachments = preview_archive(archive, settings=settings)

    assert manifest.kind == ImportKind.ITEMS
    assert [a.exists for a in attachments[0]] == [True, False]
    assert db.query(Item).count() == 0
    assert leftover_dirs(settings) == []


def test_context_manager_tears_down(db, context, settings, make_archive):
    archive = make_archive([item("a")])

    with ImportSession(archive, context, 1, db, settings=settings) as session:
        session.tmp_path.mkdir(parents=True)
        (session.tmp_path / "stale.txt").write_text("x")

    assert session.state == SessionState.TORN_DOWN
    assert not session.tmp_path.exists()
    with pytest.raises(SessionStateError):
        session.run()


def test_context_manager_after_failed_run(db, context, settings, tmp_path):
    missing = tmp_path / "missing.zip"

    with pytest.raises(ArchiveUnreadable):
        with ImportSession(missing, context, 1, db, settings=settings) as session:
            session.run()

    assert session.outcome == SessionState.ABORTED
    assert session.state == SessionState.TORN_DOWN


def test_cleanup_failure_does_not_change_result(db, context, settings, make_archive, monkeypatch, caplog):
    archive = make_archive([item("a"), item("b")], files={"Plasmid - a/notes.txt": b"x"})

    def refuse(path):
        raise PermissionError("device busy")

    monkeypatch.setattr(os, "rmdir", refuse)

    result = ImportSession(archive, context, 1, db, settings=settings).run()

    assert result.state == SessionState.FINISHED
    assert result.inserted == 2
    assert "Cannot remove" in caplog.text
    assert "device busy" in caplog.text
