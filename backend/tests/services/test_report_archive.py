"""Report Archive — owner scoping, newest-first paging and inclusive date bounds."""

from datetime import date, datetime, timezone

from mathcoach.models.learning_report import LearningReport
from mathcoach.services.report_archive import ReportArchive


async def _report(db, session_id: str, created_at: datetime, owner: str = "user-a"):
    db.add(LearningReport(
        session_id=session_id,
        owner_id=owner,
        score=80,
        level="良好",
        source="collaborator",
        payload={"score": 80, "level": "良好"},
        created_at=created_at,
    ))
    await db.commit()


async def _seed(db):
    await _report(db, "r-may", datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc))
    await _report(db, "r-jun", datetime(2026, 6, 10, 23, 59, 59, tzinfo=timezone.utc))
    await _report(db, "r-jul", datetime(2026, 7, 2, 8, 0, tzinfo=timezone.utc))
    await _report(db, "r-bob", datetime(2026, 6, 10, 12, 0, tzinfo=timezone.utc), owner="user-b")


async def test_reports_are_owner_scoped_newest_first(test_db):
    await _seed(test_db)
    items, total, has_more = await ReportArchive(test_db).list_reports("user-a")
    assert [r.session_id for r in items] == ["r-jul", "r-jun", "r-may"]
    assert total == 3
    assert has_more is False


async def test_end_date_includes_the_whole_day(test_db):
    await _seed(test_db)
    items, total, _ = await ReportArchive(test_db).list_reports(
        "user-a", start_date=date(2026, 6, 1), end_date=date(2026, 6, 10),
    )
    assert [r.session_id for r in items] == ["r-jun"]
    assert total == 1


async def test_paging_reports_has_more(test_db):
    await _seed(test_db)
    archive = ReportArchive(test_db)
    first, total, has_more = await archive.list_reports("user-a", page=1, page_size=2)
    assert [r.session_id for r in first] == ["r-jul", "r-jun"]
    assert (total, has_more) == (3, True)

    second, _, has_more = await archive.list_reports("user-a", page=2, page_size=2)
    assert [r.session_id for r in second] == ["r-may"]
    assert has_more is False


async def test_no_reports_is_an_empty_page(test_db):
    items, total, has_more = await ReportArchive(test_db).list_reports("nobody")
    assert (items, total, has_more) == ([], 0, False)
