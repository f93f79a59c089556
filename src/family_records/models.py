from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum


class Gender(Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str) -> Gender:
        """大文字小文字を区別せずに性別値を変換する。"""
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"不正な性別値です: {value}")


class RelationshipType(Enum):
    PARENT = "parent"
    CHILD = "child"
    SPOUSE = "spouse"
    SIBLING = "sibling"

    @property
    def reciprocal(self) -> RelationshipType:
        """逆方向の関係種別（親⇔子、配偶者⇔配偶者、兄弟姉妹⇔兄弟姉妹）。"""
        return _RECIPROCALS[self]


_RECIPROCALS = {
    RelationshipType.PARENT: RelationshipType.CHILD,
    RelationshipType.CHILD: RelationshipType.PARENT,
    RelationshipType.SPOUSE: RelationshipType.SPOUSE,
    RelationshipType.SIBLING: RelationshipType.SIBLING,
}


class RecordError(ValueError):
    """登録内容が不正な場合のエラー。"""


@dataclass
class PersonFields:
    """人物の登録内容（ID を除く全項目）。"""

    name: str
    gender: Gender | None = None
    birth_date: date | None = None
    birth_place: str | None = None
    death_date: date | None = None
    notes: str | None = None


@dataclass
class Person(PersonFields):
    """ストアに登録された人物。"""

    id: int = 0

    @classmethod
    def from_fields(cls, person_id: int, person: PersonFields) -> Person:
        values = {f.name: getattr(person, f.name) for f in fields(PersonFields)}
        return cls(id=person_id, **values)


@dataclass
class RelationshipFields:
    """関係の登録内容。person_id が related_person_id の type であることを表す。"""

    type: RelationshipType
    person_id: int
    related_person_id: int

    def mirrored(self) -> RelationshipFields:
        return RelationshipFields(
            type=self.type.reciprocal,
            person_id=self.related_person_id,
            related_person_id=self.person_id,
        )


@dataclass
class Relationship(RelationshipFields):
    """ストアに登録された関係。"""

    id: int = 0

    def is_mirror_of(self, other: Relationship) -> bool:
        return (
            self.person_id == other.related_person_id
            and self.related_person_id == other.person_id
            and self.type == other.type.reciprocal
        )

    def involves(self, person_id: int) -> bool:
        return person_id in (self.person_id, self.related_person_id)


@dataclass
class FamilyTreeData:
    """人物と関係のフラットな一覧。"""

    persons: list[Person] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)


@dataclass(eq=False)
class TreePerson:
    """描画用に親・子・配偶者・兄弟姉妹を結び付けた人物。

    関係一覧から毎回組み立て直すもので、保存はしない。
    """

    person: Person
    children: list[TreePerson] = field(default_factory=list)
    parents: list[TreePerson] = field(default_factory=list)
    spouses: list[TreePerson] = field(default_factory=list)
    siblings: list[TreePerson] = field(default_factory=list)

    @property
    def id(self) -> int:
        return self.person.id

    @property
    def name(self) -> str:
        return self.person.name

    def __repr__(self) -> str:
        return f"TreePerson(id={self.id}, name={self.name!r})"
