"""家系の森にピクセル座標と接続線を割り当てる。

人物とその配偶者を1つのユニットとして横に並べ、子のユニットをその下の段に
配置する。各ユニットの部分木の幅を先に測り、子の並びを親ユニットの中央に
揃えることで、同じ段のノードが重ならないようにする。
座標系は左上原点、Y軸下向き (px)。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from family_records.config import LayoutConfig
from family_records.models import TreePerson
from family_records.tree_builder import display_order


class Orientation(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass
class NodeLayout:
    """人物ノードのレイアウト情報。x, y は左上の座標。"""

    person: TreePerson
    x: float
    y: float
    width: float
    height: float
    level: int

    @property
    def left(self) -> float:
        return self.x

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def cx(self) -> float:
        return self.x + self.width / 2

    @property
    def cy(self) -> float:
        return self.y + self.height / 2


@dataclass
class Connector:
    """ノード間をつなぐ水平または垂直の線分。"""

    orientation: Orientation
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass
class TreeLayout:
    """家系図全体のレイアウト情報。"""

    width: float = 0.0
    height: float = 0.0
    nodes: list[NodeLayout] = field(default_factory=list)
    connectors: list[Connector] = field(default_factory=list)

    def node_for(self, person_id: int) -> NodeLayout | None:
        for node in self.nodes:
            if node.person.id == person_id:
                return node
        return None


@dataclass(eq=False)
class _Unit:
    """人物と、その隣に並べる配偶者（いれば）。"""

    person: TreePerson
    spouse: TreePerson | None
    level: int
    children: list[_Unit] = field(default_factory=list)
    width: float = 0.0
    subtree_width: float = 0.0


def layout_family_tree(
    roots: list[TreePerson], dims: LayoutConfig | None = None
) -> TreeLayout:
    """家系の森のレイアウトを算出する。

    Args:
        roots: build_family_tree が返すルート人物のリスト
        dims: ノードサイズと間隔。None の場合はデフォルト値

    Returns:
        TreeLayout オブジェクト。各人物は高々1回だけ配置される。
    """
    dims = dims if dims is not None else LayoutConfig()
    layout = TreeLayout()
    placed: set[int] = set()

    x_offset = 0.0
    for root in display_order(roots):
        # 別のルートの配偶者として配置済みの場合など
        if root.id in placed:
            continue
        unit = _build_unit(root, 0, placed)
        _measure(unit, dims)
        _place(unit, x_offset, dims, layout)
        x_offset += unit.subtree_width + dims.sibling_spacing

    if layout.nodes:
        layout.width = max(n.right for n in layout.nodes)
        layout.height = max(n.bottom for n in layout.nodes)
    return layout


def _build_unit(person: TreePerson, level: int, placed: set[int]) -> _Unit:
    placed.add(person.id)

    # 配置には最初の（未配置の）配偶者だけを使う
    spouse = next((s for s in person.spouses if s.id not in placed), None)
    if spouse is not None:
        placed.add(spouse.id)
    unit = _Unit(person=person, spouse=spouse, level=level)

    candidates = person.children + (spouse.children if spouse is not None else [])
    for child in candidates:
        if child.id in placed:
            continue
        unit.children.append(_build_unit(child, level + 1, placed))
    return unit


def _measure(unit: _Unit, dims: LayoutConfig) -> float:
    unit.width = dims.node_width
    if unit.spouse is not None:
        unit.width += dims.spouse_spacing + dims.node_width

    children_width = _children_width(unit, dims)
    unit.subtree_width = max(unit.width, children_width)
    return unit.subtree_width


def _children_width(unit: _Unit, dims: LayoutConfig) -> float:
    if not unit.children:
        return 0.0
    total = sum(_measure(child, dims) for child in unit.children)
    return total + dims.sibling_spacing * (len(unit.children) - 1)


def _row_y(level: int, dims: LayoutConfig) -> float:
    return level * (dims.node_height + dims.level_height)


def _place(unit: _Unit, left: float, dims: LayoutConfig, layout: TreeLayout) -> None:
    """測定済みのユニットを left を左端として配置する。"""
    y = _row_y(unit.level, dims)
    unit_x = left + (unit.subtree_width - unit.width) / 2

    node = NodeLayout(
        person=unit.person,
        x=unit_x,
        y=y,
        width=dims.node_width,
        height=dims.node_height,
        level=unit.level,
    )
    layout.nodes.append(node)

    if unit.spouse is not None:
        spouse_node = NodeLayout(
            person=unit.spouse,
            x=node.right + dims.spouse_spacing,
            y=y,
            width=dims.node_width,
            height=dims.node_height,
            level=unit.level,
        )
        layout.nodes.append(spouse_node)
        layout.connectors.append(
            Connector(Orientation.HORIZONTAL, node.right, node.cy, spouse_node.left, spouse_node.cy)
        )

    if not unit.children:
        return

    children_width = sum(c.subtree_width for c in unit.children)
    children_width += dims.sibling_spacing * (len(unit.children) - 1)
    child_left = left + (unit.subtree_width - children_width) / 2

    # 夫婦の場合は2人の中間から線を下ろす
    center_x = unit_x + unit.width / 2
    parent_y = node.bottom
    bar_y = parent_y + dims.level_height / 2
    layout.connectors.append(
        Connector(Orientation.VERTICAL, center_x, parent_y, center_x, bar_y)
    )

    child_centers: list[float] = []
    for child in unit.children:
        _place(child, child_left, dims, layout)
        child_x = child_left + (child.subtree_width - child.width) / 2
        child_cx = child_x + dims.node_width / 2
        child_centers.append(child_cx)
        layout.connectors.append(
            Connector(Orientation.VERTICAL, child_cx, bar_y, child_cx, _row_y(child.level, dims))
        )
        child_left += child.subtree_width + dims.sibling_spacing

    bar_left = min(child_centers[0], center_x)
    bar_right = max(child_centers[-1], center_x)
    if bar_right > bar_left:
        layout.connectors.append(
            Connector(Orientation.HORIZONTAL, bar_left, bar_y, bar_right, bar_y)
        )
