from __future__ import annotations

import logging
from pathlib import Path

import click

from family_records.config import AppConfig, load_config
from family_records.csv_loader import CsvLoadError, load_records
from family_records.drawer import TreeDrawer, format_lifespan
from family_records.layout_engine import layout_family_tree
from family_records.models import RecordError, TreePerson
from family_records.store import RecordStore
from family_records.tree_builder import build_family_tree, display_order

_CONFIG_OPTION = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, readable=True),
    default=None,
    help="設定ファイルのパス（省略時はカレントディレクトリの config.toml を自動検索）",
)
_PERSONS_OPTION = click.option(
    "--persons", "persons_path", required=True, help="人物CSVファイルパス"
)
_RELATIONSHIPS_OPTION = click.option(
    "--relationships", "relationships_path", default=None, help="関係CSVファイルパス"
)


def _load(persons_path: str, relationships_path: str | None) -> RecordStore:
    try:
        return load_records(persons_path, relationships_path)
    except (CsvLoadError, RecordError) as e:
        raise click.ClickException(str(e))


def _config(config_path: str | None) -> AppConfig:
    return load_config(Path(config_path) if config_path else None)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="詳細なログを出力する")
def cli(verbose: bool) -> None:
    """家系図の記録・レイアウト・描画CLIアプリケーション"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


@cli.command()
@_PERSONS_OPTION
@_RELATIONSHIPS_OPTION
def tree(persons_path: str, relationships_path: str | None) -> None:
    """家系の森をインデント付きのテキストで表示する"""
    store = _load(persons_path, relationships_path)
    roots = build_family_tree(store.family_tree_data())
    shown: set[int] = set()
    for root in display_order(roots):
        for line in _outline(root, 0, shown):
            click.echo(line)


def _outline(person: TreePerson, depth: int, shown: set[int]) -> list[str]:
    if person.id in shown:
        return []
    shown.add(person.id)

    label = f"{person.name} [{person.id}]"
    lifespan = format_lifespan(person.person)
    if lifespan:
        label += f" ({lifespan})"
    spouses = [s for s in person.spouses if s.id not in shown]
    if spouses:
        label += " = " + ", ".join(f"{s.name} [{s.id}]" for s in spouses)
        shown.update(s.id for s in spouses)

    lines = ["  " * depth + label]
    children = person.children + [c for s in spouses for c in s.children]
    for child in children:
        lines.extend(_outline(child, depth + 1, shown))
    return lines


@cli.command()
@_PERSONS_OPTION
@_RELATIONSHIPS_OPTION
@_CONFIG_OPTION
def layout(persons_path: str, relationships_path: str | None, config_path: str | None) -> None:
    """各人物の座標と接続線をテキストで出力する"""
    store = _load(persons_path, relationships_path)
    config = _config(config_path)
    result = layout_family_tree(
        build_family_tree(store.family_tree_data()), config.layout
    )

    click.echo(f"size {result.width:g} {result.height:g}")
    for node in result.nodes:
        click.echo(
            f"node {node.person.id} {node.x:g} {node.y:g} "
            f"{node.width:g} {node.height:g} {node.person.name}"
        )
    for c in result.connectors:
        click.echo(f"line {c.orientation.value} {c.x1:g} {c.y1:g} {c.x2:g} {c.y2:g}")


@cli.command()
@_PERSONS_OPTION
@_RELATIONSHIPS_OPTION
@click.option("--output", "output_path", required=True, help="出力PNGファイルパス")
@_CONFIG_OPTION
def render(
    persons_path: str,
    relationships_path: str | None,
    output_path: str,
    config_path: str | None,
) -> None:
    """家系図をレイアウトしてPNG画像として出力する"""
    store = _load(persons_path, relationships_path)
    config = _config(config_path)
    result = layout_family_tree(
        build_family_tree(store.family_tree_data()), config.layout
    )
    if not result.nodes:
        raise click.ClickException("人物が登録されていません")

    path = TreeDrawer(result, config).save(output_path)
    click.echo(f"出力しました: {path}")


@cli.command()
@_PERSONS_OPTION
@_RELATIONSHIPS_OPTION
@click.option("--output", "output_path", required=True, help="出力ファイルパス")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["png", "svg"]),
    default=None,
    help="出力形式（省略時は出力ファイルの拡張子から判断）",
)
@_CONFIG_OPTION
def graph(
    persons_path: str,
    relationships_path: str | None,
    output_path: str,
    fmt: str | None,
    config_path: str | None,
) -> None:
    """家系図を Graphviz で画像として出力する"""
    from family_records.graph_builder import build_graph
    from family_records.renderer import render_graph

    store = _load(persons_path, relationships_path)
    config = _config(config_path)
    dot = build_graph(store.family_tree_data(), config.colors)
    try:
        result = render_graph(dot, output_path, fmt=fmt)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"出力しました: {result}")
