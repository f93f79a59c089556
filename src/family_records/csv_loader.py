from __future__ import annotations

import csv
import logging
from datetime import date
from pathlib import Path

from family_records.models import (
    Gender,
    PersonFields,
    RecordError,
    RelationshipFields,
    RelationshipType,
)
from family_records.store import RecordStore

logger = logging.getLogger("family_records.csv_loader")

PERSON_REQUIRED_COLUMNS = {"id", "name"}
PERSON_OPTIONAL_COLUMNS = {"gender", "birth_date", "birth_place", "death_date", "notes"}
RELATIONSHIP_REQUIRED_COLUMNS = {"type", "person_id", "related_person_id"}


class CsvLoadError(Exception):
    """CSV読み込み時のエラー。"""


def load_records(
    persons_path: str | Path, relationships_path: str | Path | None = None
) -> RecordStore:
    """人物CSVと関係CSVを読み込み、RecordStore に登録して返す。

    CSV上のIDはストアが採番するIDに対応付けて関係を登録する。
    ストアが逆方向の関係を自動で登録するため、CSVに両方向が書かれていても
    2件目は読み飛ばす。

    Args:
        persons_path: 人物CSVのパス
        relationships_path: 関係CSVのパス（省略可）

    Returns:
        RecordStore オブジェクト

    Raises:
        CsvLoadError: CSV読み込み・バリデーションエラー
    """
    store = RecordStore()
    person_rows = _read_rows(Path(persons_path), PERSON_REQUIRED_COLUMNS)

    id_map: dict[int, int] = {}
    for line_no, row in person_rows:
        try:
            csv_id = int(_required(row, "id"))
            fields = _parse_person(row)
        except (ValueError, KeyError) as e:
            raise CsvLoadError(f"{line_no}行目: {e}") from e

        if csv_id in id_map:
            raise CsvLoadError(f"{line_no}行目: IDが重複しています: {csv_id}")
        id_map[csv_id] = store.create_person(fields).id

    if relationships_path is not None:
        rel_rows = _read_rows(Path(relationships_path), RELATIONSHIP_REQUIRED_COLUMNS)
        relationships = _parse_relationships(rel_rows)
        _validate_references(relationships, set(id_map))
        _register_relationships(store, relationships, id_map)

    logger.info(
        "CSVを読み込みました: 人物 %d 件, 関係 %d 件",
        len(store.list_persons()),
        len(store.family_tree_data().relationships),
    )
    return store


def _read_rows(path: Path, required: set[str]) -> list[tuple[int, dict[str, str]]]:
    """CSVを読み込み (行番号, 行) のリストを返す。"""
    if not path.exists():
        raise CsvLoadError(f"ファイルが見つかりません: {path}")

    with path.open(encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)

        if reader.fieldnames is None:
            raise CsvLoadError(f"CSVファイルが空です: {path}")

        missing = required - set(reader.fieldnames)
        if missing:
            raise CsvLoadError(
                f"{path.name}: 必須カラムが不足しています: {', '.join(sorted(missing))}"
            )

        # 空行を読み飛ばしても実際の行番号を報告する
        return [(reader.line_num, row) for row in reader]


def _required(row: dict[str, str], column: str) -> str:
    # 列数が足りない行では DictReader が None を入れる
    value = (row.get(column) or "").strip()
    if not value:
        raise ValueError(f"{column} が空です")
    return value


def _optional(row: dict[str, str], column: str) -> str | None:
    value = (row.get(column) or "").strip()
    return value or None


def _optional_date(row: dict[str, str], column: str) -> date | None:
    value = _optional(row, column)
    return date.fromisoformat(value) if value else None


def _parse_person(row: dict[str, str]) -> PersonFields:
    """1行のCSVデータを PersonFields に変換する。"""
    name = (row.get("name") or "").strip()
    if not name:
        raise ValueError("名前が空です")

    gender_str = _optional(row, "gender")
    return PersonFields(
        name=name,
        gender=Gender.parse(gender_str) if gender_str else None,
        birth_date=_optional_date(row, "birth_date"),
        birth_place=_optional(row, "birth_place"),
        death_date=_optional_date(row, "death_date"),
        notes=_optional(row, "notes"),
    )


def _parse_relationships(
    rows: list[tuple[int, dict[str, str]]],
) -> list[tuple[int, RelationshipFields]]:
    relationships: list[tuple[int, RelationshipFields]] = []
    for line_no, row in rows:
        try:
            type_str = _required(row, "type").lower()
            try:
                rel_type = RelationshipType(type_str)
            except ValueError:
                raise ValueError(f"不正な関係種別です: {row['type']}")
            rel = RelationshipFields(
                type=rel_type,
                person_id=int(_required(row, "person_id")),
                related_person_id=int(_required(row, "related_person_id")),
            )
        except (ValueError, KeyError) as e:
            raise CsvLoadError(f"{line_no}行目: {e}") from e
        relationships.append((line_no, rel))
    return relationships


def _validate_references(
    relationships: list[tuple[int, RelationshipFields]], person_ids: set[int]
) -> None:
    """参照整合性を検証する。"""
    errors: list[str] = []
    for line_no, rel in relationships:
        for pid in (rel.person_id, rel.related_person_id):
            if pid not in person_ids:
                errors.append(f"{line_no}行目: 人物ID {pid} が存在しません")

    if errors:
        raise CsvLoadError(
            "参照整合性エラー:\n" + "\n".join(f"  - {e}" for e in errors)
        )


def _register_relationships(
    store: RecordStore,
    relationships: list[tuple[int, RelationshipFields]],
    id_map: dict[int, int],
) -> None:
    registered: set[tuple[RelationshipType, int, int]] = set()

    for line_no, rel in relationships:
        key = (rel.type, rel.person_id, rel.related_person_id)
        if key in registered:
            logger.debug("%d行目: 登録済みの関係のため読み飛ばします", line_no)
            continue

        mapped = RelationshipFields(
            type=rel.type,
            person_id=id_map[rel.person_id],
            related_person_id=id_map[rel.related_person_id],
        )
        try:
            store.create_relationship(mapped)
        except RecordError as e:
            raise CsvLoadError(f"{line_no}行目: {e}") from e

        mirror = rel.mirrored()
        registered.add(key)
        registered.add((mirror.type, mirror.person_id, mirror.related_person_id))
