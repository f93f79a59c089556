"""人物と関係を保持するインメモリのレコードストア。

関係を登録すると逆方向の関係（親⇔子、配偶者⇔配偶者、兄弟姉妹⇔兄弟姉妹）も
自動で登録し、削除時には逆方向の関係も合わせて削除する。
"""

from __future__ import annotations

import logging
from dataclasses import replace

from family_records.models import (
    FamilyTreeData,
    Person,
    PersonFields,
    RecordError,
    Relationship,
    RelationshipFields,
)

logger = logging.getLogger("family_records.store")


class RecordStore:
    """人物と関係を整数IDで管理するストア。

    ID は人物・関係それぞれ 1 から連番で採番し、削除後も再利用しない。
    参照整合性（関係が存在する人物を指しているか）は検査しない。
    """

    def __init__(self) -> None:
        self._persons: dict[int, Person] = {}
        self._relationships: dict[int, Relationship] = {}
        self._next_person_id = 1
        self._next_relationship_id = 1

    # -----------------------------------------------------------------------
    # 人物
    # -----------------------------------------------------------------------

    def get_person(self, person_id: int) -> Person | None:
        return self._persons.get(person_id)

    def list_persons(self) -> list[Person]:
        return list(self._persons.values())

    def create_person(self, person: PersonFields) -> Person:
        """人物を登録し、採番済みの Person を返す。"""
        _validate_person(person)
        created = Person.from_fields(self._next_person_id, person)
        self._next_person_id += 1
        self._persons[created.id] = created
        logger.debug("人物を登録しました: %d (%s)", created.id, created.name)
        return created

    def update_person(self, person_id: int, person: PersonFields) -> Person | None:
        """人物の全項目を置き換える。存在しない場合は None。"""
        if person_id not in self._persons:
            return None
        _validate_person(person)
        updated = Person.from_fields(person_id, person)
        self._persons[person_id] = updated
        logger.debug("人物を更新しました: %d", person_id)
        return updated

    def delete_person(self, person_id: int) -> bool:
        """人物と、その人物が関わる全ての関係を削除する。"""
        for rel in self.relationships_for_person(person_id):
            # 逆方向の関係は先に削除されている場合がある
            if rel.id in self._relationships:
                self.delete_relationship(rel.id)

        if self._persons.pop(person_id, None) is None:
            return False
        logger.debug("人物を削除しました: %d", person_id)
        return True

    # -----------------------------------------------------------------------
    # 関係
    # -----------------------------------------------------------------------

    def get_relationship(self, relationship_id: int) -> Relationship | None:
        return self._relationships.get(relationship_id)

    def relationships_for_person(self, person_id: int) -> list[Relationship]:
        """指定された人物がどちらかの側に含まれる関係を返す。"""
        return [r for r in self._relationships.values() if r.involves(person_id)]

    def create_relationship(self, relationship: RelationshipFields) -> Relationship:
        """関係と、その逆方向の関係を登録する。

        Returns:
            登録した（逆方向ではない側の）Relationship

        Raises:
            RecordError: 自分自身との関係を登録しようとした場合
        """
        if relationship.person_id == relationship.related_person_id:
            raise RecordError(
                f"自分自身との関係は登録できません: {relationship.person_id}"
            )

        created = self._insert_relationship(relationship)
        mirror = self._insert_relationship(relationship.mirrored())
        logger.debug(
            "関係を登録しました: %d (%s %d -> %d), 逆方向 %d",
            created.id,
            created.type.value,
            created.person_id,
            created.related_person_id,
            mirror.id,
        )
        return created

    def delete_relationship(self, relationship_id: int) -> bool:
        """関係と、その逆方向の関係を削除する。存在しない場合は False。"""
        relationship = self._relationships.pop(relationship_id, None)
        if relationship is None:
            return False

        mirror_ids = [
            r.id for r in self._relationships.values() if r.is_mirror_of(relationship)
        ]
        for mirror_id in mirror_ids:
            del self._relationships[mirror_id]
        logger.debug(
            "関係を削除しました: %d (逆方向 %s)", relationship_id, mirror_ids
        )
        return True

    # -----------------------------------------------------------------------
    # 家系図
    # -----------------------------------------------------------------------

    def family_tree_data(self) -> FamilyTreeData:
        """全人物・全関係のスナップショットを返す。"""
        return FamilyTreeData(
            persons=[replace(p) for p in self._persons.values()],
            relationships=[replace(r) for r in self._relationships.values()],
        )

    def _insert_relationship(self, relationship: RelationshipFields) -> Relationship:
        created = Relationship(
            type=relationship.type,
            person_id=relationship.person_id,
            related_person_id=relationship.related_person_id,
            id=self._next_relationship_id,
        )
        self._next_relationship_id += 1
        self._relationships[created.id] = created
        return created


def _validate_person(person: PersonFields) -> None:
    if not person.name or not person.name.strip():
        raise RecordError("名前が空です")
