# tests/test_query.py
from datetime import timedelta

import pytest

from conftest import auth
from omnirambles.common.errors import ValidationError
from omnirambles.common.utils import utcnow
from omnirambles.notes.models import Note
from omnirambles.notes.query import NoteFilters, NoteQuery
from omnirambles.notes.service import NoteStore


@pytest.fixture()
def seeded(session, make_user):
    """Trois notes avec des horodatages distincts et maîtrisés."""
    user = make_user()
    store = NoteStore(session)
    base = utcnow() - timedelta(days=1)
    ids = []
    for i, (content, tags) in enumerate((("alpha", ["work"]), ("beta", ["home"]), ("gamma", ["work", "urgent"]))):
        view = store.create(user, content)
        for name in tags:
            store.add_tag(user, view.id, name)
        ids.append(view.id)
        note = session.get(Note, view.id)
        note.created_at = base + timedelta(minutes=i)
        # ordre des mises à jour inverse de l'ordre de création
        note.updated_at = base + timedelta(hours=1, minutes=-i)
    session.commit()
    return user, ids


def test_default_order_is_newest_first(session, seeded):
    user, ids = seeded
    notes, total = NoteQuery(session).list_notes(user)
    assert total == 3
    assert [n.id for n in notes] == list(reversed(ids))
    assert all(n.current_version == 1 for n in notes)


def test_sort_by_updated(session, seeded):
    user, ids = seeded
    q = NoteQuery(session)
    notes, _ = q.list_notes(user, NoteFilters(sort_by="updated", sort_order="asc"))
    assert [n.id for n in notes] == list(reversed(ids))
    notes, _ = q.list_notes(user, NoteFilters(sort_by="updated_at", sort_order="desc"))
    assert [n.id for n in notes] == ids


def test_tag_filter_matches_any(session, seeded):
    user, ids = seeded
    q = NoteQuery(session)
    notes, total = q.list_notes(user, NoteFilters(tag_names=["work"], sort_order="asc"))
    assert [n.id for n in notes] == [ids[0], ids[2]]
    assert total == 2

    notes, total = q.list_notes(user, NoteFilters(tag_names=["URGENT", "home"], sort_order="asc"))
    assert [n.id for n in notes] == [ids[1], ids[2]]

    notes, total = q.list_notes(user, NoteFilters(tag_names=["nope"]))
    assert notes == [] and total == 0


def test_pagination_reports_full_total(session, seeded):
    user, ids = seeded
    q = NoteQuery(session)
    page1, total = q.list_notes(user, NoteFilters(sort_order="asc", limit=2, offset=0))
    page2, _ = q.list_notes(user, NoteFilters(sort_order="asc", limit=2, offset=2))
    assert total == 3
    assert [n.id for n in page1 + page2] == ids

    beyond, total = q.list_notes(user, NoteFilters(limit=2, offset=10))
    assert beyond == [] and total == 3


def test_ties_broken_by_id(session, make_user):
    user = make_user()
    store = NoteStore(session)
    ids = [store.create(user, f"note {i}").id for i in range(3)]
    same = utcnow()
    for nid in ids:
        session.get(Note, nid).created_at = same
    session.commit()

    notes, _ = NoteQuery(session).list_notes(user, NoteFilters(sort_order="asc"))
    assert [n.id for n in notes] == ids
    notes, _ = NoteQuery(session).list_notes(user, NoteFilters(sort_order="desc"))
    assert [n.id for n in notes] == list(reversed(ids))


def test_current_version_in_listing(session, make_user):
    user = make_user()
    store = NoteStore(session)
    nid = store.create(user, "v1").id
    store.update(user, nid, "v2")
    store.update(user, nid, "v3")
    notes, _ = NoteQuery(session).list_notes(user)
    assert notes[0].current_version == 3


@pytest.mark.parametrize("filters", [
    NoteFilters(sort_by="title"),
    NoteFilters(sort_order="up"),
    NoteFilters(limit=0),
    NoteFilters(limit=1001),
    NoteFilters(offset=-1),
])
def test_invalid_filters(session, make_user, filters):
    user = make_user()
    with pytest.raises(ValidationError):
        NoteQuery(session).list_notes(user, filters)


def test_list_endpoint(client, alice, bob):
    for content in ("one", "two", "three"):
        client.post("/api/v1/notes/", headers=auth(alice), json={"content": content})
    r = client.post("/api/v1/notes/", headers=auth(alice), json={"content": "tagged"})
    client.post(f"/api/v1/notes/{r.get_json()['id']}/tags", headers=auth(alice), json={"tag_name": "pick"})
    client.post("/api/v1/notes/", headers=auth(bob), json={"content": "bob's"})

    r = client.get("/api/v1/notes/?limit=2&offset=1&sort_order=asc", headers=auth(alice))
    assert r.status_code == 200
    body = r.get_json()
    assert body["meta"] == {"limit": 2, "offset": 1, "total": 4}
    assert [n["content"] for n in body["data"]] == ["two", "three"]

    r = client.get("/api/v1/notes/?tags=pick,%20missing", headers=auth(alice))
    assert [n["content"] for n in r.get_json()["data"]] == ["tagged"]
    assert r.get_json()["meta"]["limit"] == 100

    r = client.get("/api/v1/notes/?sort_by=title", headers=auth(alice))
    assert r.status_code == 400
    r = client.get("/api/v1/notes/?limit=5000", headers=auth(alice))
    assert r.status_code == 400
    r = client.get("/api/v1/notes/?offset=-3", headers=auth(alice))
    assert r.status_code == 400
