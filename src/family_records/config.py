"""設定ファイルの読み込みと設定値の管理。

TOML 形式の設定ファイルを読み込み、AppConfig として返す。
設定ファイルが存在しない場合はデフォルト値を使用する。
"""

from __future__ import annotations

import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import NoReturn


@dataclass
class ColorConfig:
    """描画色の設定。"""

    background: tuple[int, int, int] = (247, 250, 252)
    male_fill: tuple[int, int, int] = (235, 244, 255)
    female_fill: tuple[int, int, int] = (255, 240, 246)
    other_fill: tuple[int, int, int] = (245, 240, 255)
    male_border: tuple[int, int, int] = (66, 153, 225)     # 青
    female_border: tuple[int, int, int] = (237, 100, 166)  # 桃
    other_border: tuple[int, int, int] = (159, 122, 234)   # 紫（性別未設定を含む）
    connector: tuple[int, int, int] = (113, 128, 150)
    text: tuple[int, int, int] = (45, 55, 72)


@dataclass
class DimensionConfig:
    """画像描画パラメータの設定。"""

    padding: int = 40            # 画像周囲の余白 (px)
    connector_width: int = 2
    border_width: int = 3
    corner_radius: int = 12      # ノード角丸半径 (px)
    font_size_name: int = 20     # 名前フォントサイズ (px)
    font_size_detail: int = 14   # 生没年・出生地フォントサイズ (px)


@dataclass
class LayoutConfig:
    """家系図レイアウトの寸法 (px)。"""

    node_width: int = 256
    node_height: int = 120
    level_height: int = 160      # 世代間の縦方向の間隔
    sibling_spacing: int = 40
    spouse_spacing: int = 32


@dataclass
class AppConfig:
    """アプリケーション全体の設定。"""

    colors: ColorConfig = field(default_factory=ColorConfig)
    dimensions: DimensionConfig = field(default_factory=DimensionConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)


# ---------------------------------------------------------------------------
# バリデーション
# ---------------------------------------------------------------------------

_RGB_KEYS = (
    "background",
    "male_fill",
    "female_fill",
    "other_fill",
    "male_border",
    "female_border",
    "other_border",
    "connector",
    "text",
)

_DIM_INT_KEYS = (
    "padding",
    "connector_width",
    "border_width",
    "corner_radius",
    "font_size_name",
    "font_size_detail",
)

_LAYOUT_INT_KEYS = (
    "node_width",
    "node_height",
    "level_height",
    "sibling_spacing",
    "spouse_spacing",
)


def _fail(message: str) -> NoReturn:
    print(f"設定エラー: {message}", file=sys.stderr)
    sys.exit(1)


def _validate_rgb(value: object, key: str) -> tuple[int, int, int]:
    """RGB 配列値を検証し tuple[int, int, int] に変換する。"""
    if not isinstance(value, list) or len(value) != 3:
        _fail(f"{key} は [R, G, B] 形式の3要素配列で指定してください")
    for i, v in enumerate(value):  # type: ignore[arg-type]
        if not isinstance(v, int) or not (0 <= v <= 255):
            _fail(f"{key}[{i}] は 0〜255 の整数で指定してください")
    return (int(value[0]), int(value[1]), int(value[2]))  # type: ignore[index]


def _validate_int(value: object, key: str, minimum: int = 0) -> int:
    # bool は int のサブクラスなので除外する
    if not isinstance(value, int) or isinstance(value, bool):
        _fail(f"{key} は整数で指定してください")
    if value < minimum:  # type: ignore[operator]
        _fail(f"{key} は {minimum} 以上で指定してください")
    return int(value)  # type: ignore[arg-type]


def _build_colors(data: dict[str, object]) -> ColorConfig:
    cfg = ColorConfig()
    for key in _RGB_KEYS:
        if key in data:
            setattr(cfg, key, _validate_rgb(data[key], f"style.colors.{key}"))
    return cfg


def _build_dimensions(data: dict[str, object]) -> DimensionConfig:
    cfg = DimensionConfig()
    for key in _DIM_INT_KEYS:
        if key in data:
            setattr(cfg, key, _validate_int(data[key], f"style.dimensions.{key}"))
    return cfg


def _build_layout(data: dict[str, object]) -> LayoutConfig:
    cfg = LayoutConfig()
    for key in _LAYOUT_INT_KEYS:
        if key in data:
            # ノードの幅・高さが 0 だと描画できない
            minimum = 1 if key in ("node_width", "node_height") else 0
            setattr(cfg, key, _validate_int(data[key], f"layout.{key}", minimum))
    return cfg


# ---------------------------------------------------------------------------
# ロード
# ---------------------------------------------------------------------------


def load_config(path: Path | None) -> AppConfig:
    """設定ファイルを読み込んで AppConfig を返す。

    Args:
        path: 設定ファイルのパス。None の場合はカレントディレクトリの
              config.toml を探索し、存在しなければデフォルト値を使用する。

    Returns:
        AppConfig オブジェクト。
    """
    config_path = path if path is not None else Path("config.toml")

    if not config_path.exists():
        return AppConfig()

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            _fail(f"{config_path} を読み込めません: {e}")

    app_config = AppConfig()

    style: dict[str, object] = data.get("style", {})  # type: ignore[assignment]
    if isinstance(style, dict):
        colors = style.get("colors")
        if isinstance(colors, dict):
            app_config.colors = _build_colors(colors)  # type: ignore[arg-type]
        dimensions = style.get("dimensions")
        if isinstance(dimensions, dict):
            app_config.dimensions = _build_dimensions(dimensions)  # type: ignore[arg-type]

    layout = data.get("layout")
    if isinstance(layout, dict):
        app_config.layout = _build_layout(layout)  # type: ignore[arg-type]

    return app_config
