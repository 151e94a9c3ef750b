# investment_tracker/tests/test_project_service.py
import json

import pytest

from investment_tracker.db.enums import ProjectStage
from investment_tracker.services.persistence_service import PROJECTS_KEY, VIEW_HISTORY_KEY
from investment_tracker.services.project_service import ProjectService

FORM = {
    "projectName": "Keana Salt Works",
    "projectSector": "Solid Minerals",
    "focalPersonName": "Ibrahim",
    "investmentWorth": 1000,
    "jobsToBeCreated": 12,
}


def stored(store, key):
    return json.loads(store.get(key))


# =========
# 1️⃣ 新增
# =========

def test_empty_store_starts_with_seed_projects(project_service):
    assert len(project_service.projects) == 3
    assert all(p.created_by == "system" for p in project_service.projects)


def test_add_project_stamps_and_prepends(project_service, store, clock):
    project = project_service.add_project(data=FORM, actor="alice")

    assert project_service.projects[0] is project
    assert len(project_service.projects) == 4
    assert project.created_by == project.last_modified_by == "alice"
    assert project.created_at == project.updated_at == "2025-01-31T09:15:00.000Z"

    # write-through: the store already has the new record first
    records = stored(store, PROJECTS_KEY)
    assert records[0]["id"] == project.id
    assert records[0]["projectName"] == "Keana Salt Works"


def test_add_without_actor_is_guest(project_service):
    assert project_service.add_project(data=FORM).created_by == "guest"


def test_add_duplicate_name_raises(project_service):
    project_service.add_project(data=FORM, actor="alice")
    with pytest.raises(ValueError):
        project_service.add_project(data={**FORM, "projectName": " KEANA salt works"}, actor="bob")
    assert len(project_service.projects) == 4


# =========
# 2️⃣ 修改
# =========

def test_update_restamps_and_keeps_creation_facts(project_service, clock):
    project = project_service.add_project(data=FORM, actor="alice")
    clock.advance(minutes=5)

    updated = project_service.update_project(
        project_id=project.id,
        updates={"projectStage": "Completed", "investmentWorth": 2500},
        actor="bob",
    )

    assert updated.project_stage == ProjectStage.COMPLETED
    assert updated.investment_worth == 2500
    assert updated.last_modified_by == "bob"
    assert updated.updated_at == "2025-01-31T09:20:00.000Z"
    assert (updated.id, updated.created_by, updated.created_at) == (
        project.id, project.created_by, project.created_at,
    )


def test_updates_within_same_instant_stay_ordered(project_service):
    project = project_service.add_project(data=FORM, actor="alice")

    stamps = [project.updated_at]
    for worth in (1, 2, 3):
        stamps.append(
            project_service.update_project(
                project_id=project.id, updates={"investmentWorth": worth}, actor="bob"
            ).updated_at
        )

    assert stamps == sorted(set(stamps))
    assert project_service.get_project(project.id).created_at == project.created_at


def test_immutable_fields_are_ignored(project_service):
    project = project_service.add_project(data=FORM, actor="alice")

    updated = project_service.update_project(
        project_id=project.id,
        updates={"id": "hijack", "createdBy": "mallory", "createdAt": "1999-01-01T00:00:00.000Z"},
        actor="bob",
    )

    assert updated.id == project.id
    assert updated.created_by == "alice"
    assert updated.created_at == project.created_at


def test_unknown_field_raises(project_service):
    project = project_service.projects[0]
    with pytest.raises(ValueError):
        project_service.update_project(project_id=project.id, updates={"colour": "red"})


def test_unknown_id_is_noop(project_service, store):
    before = store.get(PROJECTS_KEY)
    assert project_service.update_project(project_id="missing", updates={"projectName": "x"}) is None
    assert store.get(PROJECTS_KEY) == before


def test_rename_onto_existing_name_raises(project_service):
    first, second = project_service.projects[:2]
    with pytest.raises(ValueError):
        project_service.update_project(
            project_id=second.id, updates={"projectName": first.project_name.upper()}
        )
    # 改大小写不算重名
    renamed = project_service.update_project(
        project_id=first.id, updates={"projectName": first.project_name.upper()}
    )
    assert renamed.project_name == first.project_name.upper()


def test_bulk_update(project_service):
    ids = [p.id for p in project_service.projects[:2]] + ["missing"]
    count = project_service.bulk_update(
        project_ids=ids, updates={"focalPersonName": "Zainab"}, actor="alice"
    )

    assert count == 2
    names = [p.focal_person_name for p in project_service.projects]
    assert names[:2] == ["Zainab", "Zainab"]
    assert names[2] != "Zainab"


# =========
# 3️⃣ 删除
# =========

def test_delete_and_bulk_delete(project_service, store):
    first, second, third = project_service.projects

    assert project_service.delete_project(first.id) is True
    assert project_service.delete_project(first.id) is False
    assert project_service.bulk_delete([second.id, third.id, "missing"]) == 2
    assert project_service.projects == []
    assert stored(store, PROJECTS_KEY) == []


def test_delete_purges_view_history(project_service, store):
    first, second, _ = project_service.projects
    project_service.record_view(first.id)
    project_service.record_view(second.id)

    project_service.delete_project(first.id)

    assert [e.project_id for e in project_service.history] == [second.id]
    assert [r["id"] for r in stored(store, VIEW_HISTORY_KEY)] == [second.id]


def test_emptied_collection_reloads_as_seeds(project_service, persistence, clock):
    project_service.bulk_delete([p.id for p in project_service.projects])

    reloaded = ProjectService(persistence, clock=clock)
    assert [p.project_name for p in reloaded.projects] == [
        "Solar Farm Alpha", "Wind Turbine Project Beta", "Agri-Processing Hub Gamma",
    ]


# =========
# 4️⃣ 导入
# =========

def test_import_csv_prepends_accepted_rows(project_service):
    text = (
        "Project Name,Sector,Focal Person Name\n"
        "Doma Dam,Water Resources,Yusuf\n"
        "Solar Farm Alpha,Energy,Dup\n"
        "Toto Quarry,Mining,Grace\n"
    )
    result = project_service.import_csv(text=text, actor="alice")

    assert result.summary() == "2 of 3 projects imported"
    assert result.errors == ['Row 2: Duplicate Name: "Solar Farm Alpha"']
    assert [p.project_name for p in project_service.projects[:2]] == ["Doma Dam", "Toto Quarry"]
    assert len(project_service.projects) == 5


def test_import_with_no_rows_changes_nothing(project_service, store):
    result = project_service.import_csv(text="", actor="alice")

    assert result.success_count == 0
    assert len(project_service.projects) == 3
    assert store.get(PROJECTS_KEY) is None


# =========
# 5️⃣ 最近浏览
# =========

def test_history_keeps_six_most_recent(project_service, clock):
    created = [
        project_service.add_project(data={**FORM, "projectName": f"Project {i}"}, actor="alice")
        for i in range(7)
    ]
    for project in created:
        clock.advance(seconds=1)
        project_service.record_view(project.id)

    viewed = [p.id for p, _ in project_service.recently_viewed()]
    assert viewed == [p.id for p in reversed(created[1:])]


def test_revisit_moves_to_front_without_duplicates(project_service):
    first, second, third = project_service.projects
    for project in (first, second, third, first):
        project_service.record_view(project.id)

    assert [e.project_id for e in project_service.history] == [first.id, third.id, second.id]


def test_unknown_project_is_not_recorded(project_service):
    project_service.record_view("missing")
    assert project_service.history == []


def test_recently_viewed_skips_projects_deleted_elsewhere(project_service, persistence, clock):
    first, second, _ = project_service.projects
    project_service.record_view(first.id)
    project_service.record_view(second.id)

    # 另一个会话删除了 first，但 history 里还保留引用
    project_service.projects = [p for p in project_service.projects if p.id != first.id]

    assert [p.id for p, _ in project_service.recently_viewed()] == [second.id]
    assert len(project_service.history) == 2


def test_clear_history(project_service, store):
    project_service.record_view(project_service.projects[0].id)
    project_service.clear_history()

    assert project_service.recently_viewed() == []
    assert stored(store, VIEW_HISTORY_KEY) == []
