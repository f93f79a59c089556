from __future__ import annotations

import graphviz

from family_records.config import ColorConfig
from family_records.drawer import format_lifespan
from family_records.models import FamilyTreeData, Gender, Person, RelationshipType
from family_records.tree_builder import compute_generations


def _hex(rgb: tuple[int, int, int]) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def _get_node_colors(person: Person, colors: ColorConfig) -> tuple[str, str]:
    """性別による (塗り, 枠線) の色。"""
    if person.gender == Gender.MALE:
        return _hex(colors.male_fill), _hex(colors.male_border)
    if person.gender == Gender.FEMALE:
        return _hex(colors.female_fill), _hex(colors.female_border)
    return _hex(colors.other_fill), _hex(colors.other_border)


def _format_label(person: Person) -> str:
    lifespan = format_lifespan(person)
    return f"{person.name}\n{lifespan}" if lifespan else person.name


def _collect_edges(
    data: FamilyTreeData,
) -> tuple[dict[int, set[int]], set[tuple[int, int]], set[tuple[int, int]]]:
    """関係一覧から親集合・夫婦ペア・兄弟姉妹ペアを集める。

    逆方向の関係が登録されていてもペアは1つにまとめる。
    """
    person_ids = {p.id for p in data.persons}
    parents: dict[int, set[int]] = {pid: set() for pid in person_ids}
    couples: set[tuple[int, int]] = set()
    siblings: set[tuple[int, int]] = set()

    for rel in data.relationships:
        a, b = rel.person_id, rel.related_person_id
        if a not in person_ids or b not in person_ids:
            continue
        pair = (min(a, b), max(a, b))
        if rel.type == RelationshipType.PARENT:
            parents[b].add(a)
        elif rel.type == RelationshipType.CHILD:
            parents[a].add(b)
        elif rel.type == RelationshipType.SPOUSE:
            couples.add(pair)
        elif rel.type == RelationshipType.SIBLING:
            siblings.add(pair)

    return parents, couples, siblings


def build_graph(
    data: FamilyTreeData, colors: ColorConfig | None = None
) -> graphviz.Digraph:
    """FamilyTreeData から Graphviz の Digraph オブジェクトを生成する。

    Args:
        data: 人物・関係の一覧
        colors: 背景・ノード・線の色。None の場合はデフォルト値
    """
    colors = colors if colors is not None else ColorConfig()
    connector = _hex(colors.connector)
    generations = compute_generations(data)
    parents, couples, siblings = _collect_edges(data)

    dot = graphviz.Digraph(
        "family_tree",
        graph_attr={
            "rankdir": "TB",
            "splines": "polyline",
            "nodesep": "0.8",
            "ranksep": "1.0",
            "bgcolor": _hex(colors.background),
        },
        node_attr={
            "fontname": "Helvetica",
            "fontsize": "11",
            "shape": "box",
            "style": "filled,rounded",
            "fontcolor": _hex(colors.text),
            "penwidth": "2",
        },
        edge_attr={
            "fontname": "Helvetica",
        },
    )

    for person in data.persons:
        fill, border = _get_node_colors(person, colors)
        dot.node(
            str(person.id),
            label=_format_label(person),
            fillcolor=fill,
            color=border,
        )

    # 夫婦の共通の子は婚姻の中間ノードから線を引く
    covered: set[tuple[int, int]] = set()
    for c0, c1 in sorted(couples):
        mid_node = f"couple_{c0}_{c1}"
        dot.node(mid_node, label="", shape="point", width="0.01", height="0.01")

        with dot.subgraph() as s:
            s.attr(rank="same")
            s.node(str(c0))
            s.node(mid_node)
            s.node(str(c1))

        dot.edge(str(c0), mid_node, dir="none", color="darkred", penwidth="2")
        dot.edge(mid_node, str(c1), dir="none", color="darkred", penwidth="2")

        for child_id in sorted(parents):
            if {c0, c1} <= parents[child_id]:
                dot.edge(mid_node, str(child_id), color=connector)
                covered.add((c0, child_id))
                covered.add((c1, child_id))

    # 婚姻ペアでカバーされない親子（片親のみ等）
    for child_id in sorted(parents):
        for pid in sorted(parents[child_id]):
            if (pid, child_id) not in covered:
                dot.edge(str(pid), str(child_id), color=connector)

    for s0, s1 in sorted(siblings):
        dot.edge(
            str(s0),
            str(s1),
            dir="none",
            style="dashed",
            color="gray60",
            constraint="false",
        )

    # 世代ごとに rank を揃える
    gen_groups: dict[int, list[int]] = {}
    for pid, gen in generations.items():
        gen_groups.setdefault(gen, []).append(pid)

    for gen in sorted(gen_groups):
        with dot.subgraph() as s:
            s.attr(rank="same")
            for pid in sorted(gen_groups[gen]):
                s.node(str(pid))

    return dot
