from __future__ import annotations

import logging
from pathlib import Path

import graphviz

logger = logging.getLogger("family_records.renderer")

SUPPORTED_FORMATS = ("png", "svg")


def resolve_format(output_path: str | Path, fmt: str | None = None) -> str:
    """出力形式を決める。fmt を省略した場合は拡張子から判断する。

    Raises:
        ValueError: png / svg 以外の形式
    """
    if fmt is None:
        fmt = Path(output_path).suffix.lstrip(".").lower()
        if not fmt:
            raise ValueError(
                f"出力形式を判断できません: {output_path}（--format で指定してください）"
            )
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(
            f"未対応の出力形式です: {fmt}（{' / '.join(SUPPORTED_FORMATS)} のいずれか）"
        )
    return fmt


def render_graph(
    dot: graphviz.Digraph,
    output_path: str | Path,
    fmt: str | None = None,
) -> Path:
    """Graphviz グラフを画像ファイルとして出力する。

    拡張子が出力形式と異なる場合は、形式に合わせた拡張子に置き換えて出力する。

    Args:
        dot: Graphviz Digraph オブジェクト
        output_path: 出力ファイルパス（例: output/tree.svg）
        fmt: 出力形式（"png" または "svg"）。省略時は拡張子から判断

    Returns:
        出力されたファイルのパス
    """
    fmt = resolve_format(output_path, fmt)
    output_path = Path(output_path)
    if output_path.suffix.lower() != f".{fmt}":
        logger.warning(
            "拡張子を出力形式に合わせます: %s -> .%s", output_path.name, fmt
        )
        output_path = output_path.with_suffix(f".{fmt}")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    dot.render(
        outfile=str(output_path),
        format=fmt,
        cleanup=True,
        quiet=True,
    )
    logger.info("Graphviz で出力しました: %s (%s)", output_path, fmt)
    return output_path
