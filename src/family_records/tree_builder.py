from __future__ import annotations

from family_records.models import (
    FamilyTreeData,
    RelationshipFields,
    RelationshipType,
    TreePerson,
)


def build_family_tree(data: FamilyTreeData) -> list[TreePerson]:
    """フラットな人物・関係一覧から家系の森を組み立てる。

    関係 ``person_id -[type]-> related_person_id`` ごとに、person_id 側の
    children / parents / spouses / siblings に相手を追加する。
    存在しない人物を指す関係は無視する。

    Returns:
        親の記録がない人物（ルート）を ID 順に並べたリスト
    """
    if not data.persons:
        return []

    nodes = {p.id: TreePerson(person=p) for p in data.persons}

    for rel in data.relationships:
        person = nodes.get(rel.person_id)
        related = nodes.get(rel.related_person_id)
        if person is None or related is None:
            continue
        if rel.type == RelationshipType.PARENT:
            person.children.append(related)
        elif rel.type == RelationshipType.CHILD:
            person.parents.append(related)
        elif rel.type == RelationshipType.SPOUSE:
            person.spouses.append(related)
        elif rel.type == RelationshipType.SIBLING:
            person.siblings.append(related)

    with_parents = {
        rel.person_id
        for rel in data.relationships
        if rel.type == RelationshipType.CHILD
    }
    roots = [node for pid, node in nodes.items() if pid not in with_parents]
    return sorted(roots, key=lambda n: n.id)


def display_order(roots: list[TreePerson]) -> list[TreePerson]:
    """配置・表示するルートの順序を返す。

    親の記録がある人物と結婚したルート（婚姻で家系に入った人物）は後回しにする。
    先に相手の親のもとで相手と並べて配置させ、親子の線を失わないようにする。
    各グループ内は元の順序を保つ。
    """
    married_in = [r for r in roots if any(s.parents for s in r.spouses)]
    return [r for r in roots if r not in married_in] + married_in


def index_tree(roots: list[TreePerson]) -> dict[int, TreePerson]:
    """ルートから辿れる全人物を ID で引けるようにする。"""
    index: dict[int, TreePerson] = {}
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        if node.id in index:
            continue
        index[node.id] = node
        related = node.children + node.spouses + node.siblings + node.parents
        stack.extend(reversed(related))
    return index


def relationships_from_tree(roots: list[TreePerson]) -> list[RelationshipFields]:
    """家系の森を関係一覧に戻す。

    親子は (親, 子) ごとに parent を1件、配偶者・兄弟姉妹は順序を問わない
    ペアごとに1件だけ出力する。逆方向の関係はストア側で補われる前提。
    """
    relationships: list[RelationshipFields] = []
    seen_pairs: set[tuple[RelationshipType, int, int]] = set()
    visited: set[int] = set()

    def add(kind: RelationshipType, a: int, b: int, symmetric: bool) -> None:
        key = (kind, *sorted((a, b))) if symmetric else (kind, a, b)
        if key in seen_pairs:
            return
        seen_pairs.add(key)  # type: ignore[arg-type]
        relationships.append(
            RelationshipFields(type=kind, person_id=a, related_person_id=b)
        )

    stack = list(reversed(roots))
    while stack:
        person = stack.pop()
        if person.id in visited:
            continue
        visited.add(person.id)

        for child in person.children:
            add(RelationshipType.PARENT, person.id, child.id, symmetric=False)
        for spouse in person.spouses:
            add(RelationshipType.SPOUSE, person.id, spouse.id, symmetric=True)
        for sibling in person.siblings:
            add(RelationshipType.SIBLING, person.id, sibling.id, symmetric=True)

        stack.extend(reversed(person.children))

    return relationships


def compute_generations(data: FamilyTreeData) -> dict[int, int]:
    """各人物の世代（depth）を算出する。

    親の記録がない人物を第0世代とし、子の世代は全ての親の世代の最大値 + 1。
    配偶者は同じ世代に揃える（より深い方に合わせる）。
    親子関係が循環している人物には世代を割り当てない。

    Returns:
        person_id -> generation のマッピング
    """
    person_ids = {p.id for p in data.persons}
    parents: dict[int, set[int]] = {pid: set() for pid in person_ids}
    spouses: dict[int, set[int]] = {pid: set() for pid in person_ids}

    for rel in data.relationships:
        if rel.person_id not in person_ids or rel.related_person_id not in person_ids:
            continue
        if rel.type == RelationshipType.CHILD:
            parents[rel.person_id].add(rel.related_person_id)
        elif rel.type == RelationshipType.PARENT:
            parents[rel.related_person_id].add(rel.person_id)
        elif rel.type == RelationshipType.SPOUSE:
            spouses[rel.person_id].add(rel.related_person_id)
            spouses[rel.related_person_id].add(rel.person_id)

    generations = {pid: 0 for pid, ps in parents.items() if not ps}

    # 世代が確定しなくなるまで、または人数分の反復で打ち切る
    for _ in range(len(person_ids) + 1):
        changed = False

        for pid, ps in parents.items():
            if not ps or not all(p in generations for p in ps):
                continue
            new_gen = max(generations[p] for p in ps) + 1
            if generations.get(pid, -1) < new_gen:
                generations[pid] = new_gen
                changed = True

        for pid, ss in spouses.items():
            for sid in ss:
                if pid in generations and sid in generations:
                    if generations[pid] < generations[sid]:
                        generations[pid] = generations[sid]
                        changed = True

        if not changed:
            break

    return generations
