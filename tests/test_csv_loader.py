from __future__ import annotations

import textwrap
from datetime import date
from pathlib import Path

import pytest

from family_records.csv_loader import CsvLoadError, load_records
from family_records.models import Gender, RelationshipType


def _write(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


@pytest.fixture()
def persons_csv(tmp_path: Path) -> Path:
    """最小限の人物CSVを作成する。"""
    return _write(
        tmp_path / "persons.csv",
        """\
        id,name,gender,birth_date,birth_place,death_date,notes
        10,太郎,male,1940-03-15,東京,2015-08-01,
        20,花子,Female,1942-07-22,,,
        30,一郎,,,,,長男
        """,
    )


@pytest.fixture()
def relationships_csv(tmp_path: Path) -> Path:
    return _write(
        tmp_path / "relationships.csv",
        """\
        type,person_id,related_person_id
        spouse,10,20
        parent,10,30
        child,30,10
        parent,20,30
        """,
    )


class TestLoadPersons:
    def test_load_basic(self, persons_csv: Path) -> None:
        store = load_records(persons_csv)
        assert len(store.list_persons()) == 3

    def test_person_fields(self, persons_csv: Path) -> None:
        store = load_records(persons_csv)
        taro = store.get_person(1)
        assert taro is not None
        assert taro.name == "太郎"
        assert taro.gender == Gender.MALE
        assert taro.birth_date == date(1940, 3, 15)
        assert taro.birth_place == "東京"
        assert taro.death_date == date(2015, 8, 1)
        assert taro.notes is None

    def test_blank_cells_are_none(self, persons_csv: Path) -> None:
        store = load_records(persons_csv)
        ichiro = store.get_person(3)
        assert ichiro is not None
        assert ichiro.gender is None
        assert ichiro.birth_date is None
        assert ichiro.notes == "長男"

    def test_gender_case_insensitive(self, persons_csv: Path) -> None:
        store = load_records(persons_csv)
        assert store.get_person(2).gender == Gender.FEMALE  # type: ignore[union-attr]

    def test_only_required_columns(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "p.csv", "id,name\n1,太郎\n")
        store = load_records(path)
        assert store.get_person(1).name == "太郎"  # type: ignore[union-attr]


class TestLoadRelationships:
    def test_ids_mapped_to_store(self, persons_csv: Path, relationships_csv: Path) -> None:
        store = load_records(persons_csv, relationships_csv)
        rels = store.relationships_for_person(3)
        parents = {r.related_person_id for r in rels if r.type == RelationshipType.CHILD}
        assert parents == {1, 2}

    def test_listed_mirror_not_duplicated(
        self, persons_csv: Path, relationships_csv: Path
    ) -> None:
        """両方向が書かれていても関係は1組だけ登録される。"""
        store = load_records(persons_csv, relationships_csv)
        # spouse 1組 + parent 2組、それぞれ逆方向込みで2件
        assert len(store.family_tree_data().relationships) == 6

    def test_sample_files(self) -> None:
        store = load_records("examples/persons.csv", "examples/relationships.csv")
        assert len(store.list_persons()) == 9
        assert len(store.family_tree_data().relationships) == 30


class TestLoadErrors:
    def test_file_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(CsvLoadError, match="ファイルが見つかりません"):
            load_records(tmp_path / "missing.csv")

    def test_empty_file(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "p.csv", "")
        with pytest.raises(CsvLoadError, match="空です"):
            load_records(path)

    def test_missing_columns(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "p.csv", "id,gender\n1,male\n")
        with pytest.raises(CsvLoadError, match="name"):
            load_records(path)

    def test_duplicate_id(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "p.csv", "id,name\n1,太郎\n1,花子\n")
        with pytest.raises(CsvLoadError, match="3行目"):
            load_records(path)

    def test_invalid_gender(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "p.csv", "id,name,gender\n1,太郎,X\n")
        with pytest.raises(CsvLoadError, match="不正な性別値"):
            load_records(path)

    def test_invalid_date(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "p.csv", "id,name,birth_date\n1,太郎,1940/03/15\n")
        with pytest.raises(CsvLoadError, match="2行目"):
            load_records(path)

    def test_blank_name(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "p.csv", "id,name\n1, \n")
        with pytest.raises(CsvLoadError, match="名前が空です"):
            load_records(path)

    def test_invalid_relationship_type(self, persons_csv: Path, tmp_path: Path) -> None:
        rels = _write(tmp_path / "r.csv", "type,person_id,related_person_id\ncousin,10,20\n")
        with pytest.raises(CsvLoadError, match="不正な関係種別"):
            load_records(persons_csv, rels)

    def test_unknown_reference(self, persons_csv: Path, tmp_path: Path) -> None:
        rels = _write(
            tmp_path / "r.csv",
            "type,person_id,related_person_id\nparent,10,99\nsibling,98,20\n",
        )
        with pytest.raises(CsvLoadError) as exc_info:
            load_records(persons_csv, rels)
        message = str(exc_info.value)
        assert "参照整合性エラー" in message
        assert "99" in message
        assert "98" in message

    def test_self_relationship(self, persons_csv: Path, tmp_path: Path) -> None:
        rels = _write(tmp_path / "r.csv", "type,person_id,related_person_id\nspouse,10,10\n")
        with pytest.raises(CsvLoadError, match="2行目"):
            load_records(persons_csv, rels)

    def test_short_person_row(self, tmp_path: Path) -> None:
        """列数が足りない行も行番号付きのエラーになる。"""
        path = _write(tmp_path / "p.csv", "id,name\n1\n")
        with pytest.raises(CsvLoadError, match="2行目: 名前が空です"):
            load_records(path)

    def test_short_person_row_without_id(self, tmp_path: Path) -> None:
        path = _write(tmp_path / "p.csv", "id,name\n1,太郎\n\n,\n")
        with pytest.raises(CsvLoadError, match="4行目: id が空です"):
            load_records(path)

    def test_short_relationship_row(self, persons_csv: Path, tmp_path: Path) -> None:
        rels = _write(tmp_path / "r.csv", "type,person_id,related_person_id\nparent,10\n")
        with pytest.raises(CsvLoadError, match="2行目: related_person_id が空です"):
            load_records(persons_csv, rels)

    def test_relationship_row_type_only(self, persons_csv: Path, tmp_path: Path) -> None:
        rels = _write(tmp_path / "r.csv", "type,person_id,related_person_id\nspouse\n")
        with pytest.raises(CsvLoadError, match="person_id が空です"):
            load_records(persons_csv, rels)
