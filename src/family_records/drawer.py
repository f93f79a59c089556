"""Pillow を使ってレイアウト済みの家系図を描画する。

レイアウト座標に基づいて人物ブロックと接続線を描画する。
"""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from family_records.config import AppConfig
from family_records.layout_engine import Connector, NodeLayout, TreeLayout
from family_records.models import Gender, Person

logger = logging.getLogger("family_records.drawer")


def _get_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """フォントを取得する。システムフォントが見つからない場合はデフォルトを使用。"""
    # (パス, ttcインデックス) のリスト。None はデフォルトインデックス。
    font_candidates: list[tuple[str, int | None]] = [
        ("/System/Library/Fonts/ヒラギノ角ゴシック W6.ttc", None),
        ("/System/Library/Fonts/ヒラギノ角ゴシック W3.ttc", None),
        ("/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc", None),
        ("/usr/share/fonts/truetype/noto/NotoSansCJK-Regular.ttc", None),
        ("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf", None),
        ("DejaVuSans.ttf", None),
    ]
    for font_path, index in font_candidates:
        try:
            if index is not None:
                return ImageFont.truetype(font_path, size, index=index)
            return ImageFont.truetype(font_path, size)
        except OSError:
            continue
    logger.debug("システムフォントが見つからないためデフォルトフォントを使用します")
    return ImageFont.load_default()


def format_lifespan(person: Person) -> str:
    """生没年月日を "1940-03-15 - 2010-01-01" の形式にする。"""
    if person.birth_date is None and person.death_date is None:
        return ""
    birth = person.birth_date.isoformat() if person.birth_date else "?"
    if person.death_date is None:
        return birth
    return f"{birth} - {person.death_date.isoformat()}"


class TreeDrawer:
    """家系図画像の描画を管理するクラス。"""

    def __init__(self, layout: TreeLayout, config: AppConfig) -> None:
        self.layout = layout
        self.config = config
        self.font_name = _get_font(config.dimensions.font_size_name)
        self.font_detail = _get_font(config.dimensions.font_size_detail)
        # キャンバスサイズ (余白を含む)
        padding = config.dimensions.padding
        self.canvas_width = int(layout.width + padding * 2)
        self.canvas_height = int(layout.height + padding * 2)

    def draw(self) -> Image.Image:
        """家系図全体を1枚の画像に描画する。"""
        img = Image.new(
            "RGB", (self.canvas_width, self.canvas_height), self.config.colors.background
        )
        draw = ImageDraw.Draw(img)

        # 接続線を先に描画（ノードの下に表示）
        for connector in self.layout.connectors:
            self._draw_connector(draw, connector)

        for node in self.layout.nodes:
            self._draw_person_node(draw, node)

        return img

    def save(self, output_path: str | Path) -> Path:
        """PNG として保存する。出力先ディレクトリは自動作成する。"""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        img = self.draw()
        img.save(str(output_path), format="PNG")
        logger.info("画像を出力しました: %s (%dx%d)", output_path, *img.size)
        return output_path

    def _colors_for(self, gender: Gender | None) -> tuple[tuple[int, int, int], tuple[int, int, int]]:
        colors = self.config.colors
        if gender == Gender.MALE:
            return colors.male_fill, colors.male_border
        if gender == Gender.FEMALE:
            return colors.female_fill, colors.female_border
        return colors.other_fill, colors.other_border

    def _draw_person_node(self, draw: ImageDraw.ImageDraw, node: NodeLayout) -> None:
        """人物ブロックを描画する。"""
        person = node.person.person
        padding = self.config.dimensions.padding
        dims = self.config.dimensions
        x0 = node.left + padding
        y0 = node.top + padding
        x1 = node.right + padding
        y1 = node.bottom + padding

        fill, border = self._colors_for(person.gender)
        draw.rounded_rectangle(
            [x0, y0, x1, y1],
            radius=dims.corner_radius,
            fill=fill,
            outline=border,
            width=dims.border_width,
        )

        # 名前、生没年、出生地を中央揃えで縦に並べる
        lines = [(person.name, self.font_name)]
        lifespan = format_lifespan(person)
        if lifespan:
            lines.append((lifespan, self.font_detail))
        if person.birth_place:
            lines.append((person.birth_place, self.font_detail))

        line_gap = 6
        sizes = []
        for text, font in lines:
            bbox = draw.textbbox((0, 0), text, font=font)
            sizes.append((bbox[2] - bbox[0], bbox[3] - bbox[1]))
        total_h = sum(h for _, h in sizes) + line_gap * (len(lines) - 1)

        text_y = (y0 + y1) / 2 - total_h / 2
        for (text, font), (w, h) in zip(lines, sizes):
            text_x = (x0 + x1) / 2 - w / 2
            draw.text((text_x, text_y), text, fill=self.config.colors.text, font=font)
            text_y += h + line_gap

    def _draw_connector(self, draw: ImageDraw.ImageDraw, connector: Connector) -> None:
        padding = self.config.dimensions.padding
        draw.line(
            [
                (connector.x1 + padding, connector.y1 + padding),
                (connector.x2 + padding, connector.y2 + padding),
            ],
            fill=self.config.colors.connector,
            width=self.config.dimensions.connector_width,
        )
