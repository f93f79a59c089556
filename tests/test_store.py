from __future__ import annotations

from datetime import date

import pytest

from family_records.models import (
    Gender,
    PersonFields,
    RecordError,
    RelationshipFields,
    RelationshipType,
)
from family_records.store import RecordStore


def _rel(kind: RelationshipType, a: int, b: int) -> RelationshipFields:
    return RelationshipFields(type=kind, person_id=a, related_person_id=b)


@pytest.fixture()
def store() -> RecordStore:
    """太郎(1), 花子(2), 一郎(3) を登録したストア。"""
    s = RecordStore()
    s.create_person(PersonFields(name="太郎", gender=Gender.MALE))
    s.create_person(PersonFields(name="花子", gender=Gender.FEMALE))
    s.create_person(PersonFields(name="一郎"))
    return s


class TestPersons:
    def test_ids_are_sequential(self, store: RecordStore) -> None:
        assert [p.id for p in store.list_persons()] == [1, 2, 3]

    def test_create_keeps_fields(self) -> None:
        s = RecordStore()
        person = s.create_person(
            PersonFields(
                name="太郎",
                gender=Gender.MALE,
                birth_date=date(1940, 3, 15),
                birth_place="東京",
                death_date=date(2015, 8, 1),
                notes="メモ",
            )
        )
        assert person.id == 1
        assert person.name == "太郎"
        assert person.birth_date == date(1940, 3, 15)
        assert person.death_date == date(2015, 8, 1)
        assert s.get_person(1) == person

    def test_get_missing_person(self, store: RecordStore) -> None:
        assert store.get_person(99) is None

    def test_update_replaces_all_fields(self, store: RecordStore) -> None:
        """更新は全項目の置き換えで、指定しない項目は None になる。"""
        updated = store.update_person(1, PersonFields(name="太郎（改）"))
        assert updated is not None
        assert updated.id == 1
        assert updated.name == "太郎（改）"
        assert updated.gender is None
        assert store.get_person(1) == updated

    def test_update_missing_person(self, store: RecordStore) -> None:
        assert store.update_person(99, PersonFields(name="誰か")) is None

    def test_blank_name_rejected(self, store: RecordStore) -> None:
        with pytest.raises(RecordError):
            store.create_person(PersonFields(name="   "))
        with pytest.raises(RecordError):
            store.update_person(1, PersonFields(name=""))

    def test_ids_not_reused(self, store: RecordStore) -> None:
        assert store.delete_person(3)
        person = store.create_person(PersonFields(name="次郎"))
        assert person.id == 4

    def test_delete_missing_person(self, store: RecordStore) -> None:
        assert store.delete_person(99) is False


class TestRelationships:
    @pytest.mark.parametrize(
        "kind, reciprocal",
        [
            (RelationshipType.PARENT, RelationshipType.CHILD),
            (RelationshipType.CHILD, RelationshipType.PARENT),
            (RelationshipType.SPOUSE, RelationshipType.SPOUSE),
            (RelationshipType.SIBLING, RelationshipType.SIBLING),
        ],
    )
    def test_create_adds_reciprocal(
        self,
        store: RecordStore,
        kind: RelationshipType,
        reciprocal: RelationshipType,
    ) -> None:
        created = store.create_relationship(_rel(kind, 1, 3))
        assert created.id == 1
        assert created.type == kind

        mirror = store.get_relationship(2)
        assert mirror is not None
        assert mirror.type == reciprocal
        assert mirror.person_id == 3
        assert mirror.related_person_id == 1

    def test_relationships_for_person_both_sides(self, store: RecordStore) -> None:
        store.create_relationship(_rel(RelationshipType.PARENT, 1, 3))
        store.create_relationship(_rel(RelationshipType.SPOUSE, 1, 2))
        assert len(store.relationships_for_person(1)) == 4
        assert len(store.relationships_for_person(3)) == 2
        assert store.relationships_for_person(99) == []

    def test_delete_removes_mirror(self, store: RecordStore) -> None:
        store.create_relationship(_rel(RelationshipType.PARENT, 1, 3))
        assert store.delete_relationship(1)
        assert store.get_relationship(1) is None
        assert store.get_relationship(2) is None

    def test_delete_mirror_side_removes_primary(self, store: RecordStore) -> None:
        """逆方向の関係を削除しても元の関係が消える。"""
        store.create_relationship(_rel(RelationshipType.PARENT, 1, 3))
        assert store.delete_relationship(2)
        assert store.family_tree_data().relationships == []

    def test_delete_leaves_other_relationships(self, store: RecordStore) -> None:
        store.create_relationship(_rel(RelationshipType.PARENT, 1, 3))
        store.create_relationship(_rel(RelationshipType.PARENT, 2, 3))
        store.delete_relationship(1)
        remaining = store.family_tree_data().relationships
        assert {r.id for r in remaining} == {3, 4}

    def test_delete_missing_relationship(self, store: RecordStore) -> None:
        assert store.delete_relationship(99) is False

    def test_duplicates_stored_as_given(self, store: RecordStore) -> None:
        store.create_relationship(_rel(RelationshipType.PARENT, 1, 3))
        store.create_relationship(_rel(RelationshipType.PARENT, 1, 3))
        assert len(store.family_tree_data().relationships) == 4

    def test_delete_duplicate_removes_every_mirror(self, store: RecordStore) -> None:
        """重複した関係の片方を削除すると逆方向は両方消え、もう片方だけが残る。"""
        store.create_relationship(_rel(RelationshipType.PARENT, 1, 3))
        store.create_relationship(_rel(RelationshipType.PARENT, 1, 3))
        assert store.delete_relationship(1)
        remaining = store.family_tree_data().relationships
        assert [r.id for r in remaining] == [3]
        assert store.delete_relationship(3)
        assert store.family_tree_data().relationships == []

    def test_self_relationship_rejected(self, store: RecordStore) -> None:
        with pytest.raises(RecordError):
            store.create_relationship(_rel(RelationshipType.SPOUSE, 1, 1))
        assert store.family_tree_data().relationships == []

    def test_references_not_enforced(self, store: RecordStore) -> None:
        """存在しない人物への関係も登録できる。"""
        created = store.create_relationship(_rel(RelationshipType.SIBLING, 1, 42))
        assert created.related_person_id == 42


class TestDeletePersonCascade:
    def test_cascades_to_relationships(self, store: RecordStore) -> None:
        store.create_relationship(_rel(RelationshipType.SPOUSE, 1, 2))
        store.create_relationship(_rel(RelationshipType.PARENT, 1, 3))
        store.create_relationship(_rel(RelationshipType.PARENT, 2, 3))

        assert store.delete_person(1)
        assert store.get_person(1) is None
        remaining = store.family_tree_data().relationships
        assert all(not r.involves(1) for r in remaining)
        # 花子 -> 一郎 の親子関係は残る
        assert len(remaining) == 2

    def test_every_relationship_has_mirror(self, store: RecordStore) -> None:
        store.create_relationship(_rel(RelationshipType.SPOUSE, 1, 2))
        store.create_relationship(_rel(RelationshipType.CHILD, 3, 1))
        store.create_relationship(_rel(RelationshipType.CHILD, 3, 2))
        store.delete_person(2)

        rels = store.family_tree_data().relationships
        for rel in rels:
            assert any(other.is_mirror_of(rel) for other in rels)

    def test_missing_person_relationships_still_removed(self, store: RecordStore) -> None:
        """存在しない人物を指す関係は、人物が無くても削除される。"""
        store.create_relationship(_rel(RelationshipType.SIBLING, 1, 99))
        assert store.delete_person(99) is False
        assert store.family_tree_data().relationships == []
        assert store.get_person(1) is not None


class TestFamilyTreeData:
    def test_snapshot_is_copy(self, store: RecordStore) -> None:
        data = store.family_tree_data()
        data.persons[0].name = "変更"
        data.persons.clear()
        assert store.get_person(1) is not None
        assert store.get_person(1).name == "太郎"  # type: ignore[union-attr]

    def test_contains_all_records(self, store: RecordStore) -> None:
        store.create_relationship(_rel(RelationshipType.SIBLING, 1, 3))
        data = store.family_tree_data()
        assert len(data.persons) == 3
        assert len(data.relationships) == 2
