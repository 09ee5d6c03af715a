import json
import logging
from pathlib import Path

import click
from flask.cli import with_appcontext

from bakumania import db
from bakumania.models import Bakugan, PriceHistory, SIZES
from bakumania.client import CatalogClient, CatalogController, FilterMode
from bakumania.client.api import API_BASE


@click.group("catalog")
def catalog_cli() -> None:
    """Catalog maintenance and browsing commands."""


def seed_items(rows: list[dict]) -> int:
    """Insert catalog rows (wire format, optional ``priceHistory``)."""
    created = 0
    for row in rows:
        if row.get("size") not in SIZES or not row.get("names"):
            logging.warning("skipping invalid seed row: %s", row.get("names"))
            continue
        item = Bakugan(
            names=list(row["names"]),
            size=row["size"],
            element=row.get("element", ""),
            special_properties=row.get("specialProperties") or "Normal",
            series=row.get("series") or "",
            image_url=row.get("imageUrl") or "",
            current_price=float(row.get("currentPrice", 0)),
            reference_uri=row.get("referenceUri") or "",
            date=row.get("date") or "",
        )
        db.session.add(item)
        db.session.flush()
        for point in row.get("priceHistory") or []:
            db.session.add(PriceHistory(
                bakugan_id=item.id,
                price=float(point["price"]),
                timestamp=point["timestamp"],
                notes=point.get("notes", ""),
                reference_uri=point.get("referenceUri", ""),
            ))
        created += 1
    db.session.commit()
    return created


@catalog_cli.command("seed")
@with_appcontext
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def seed_command(path: Path) -> None:
    """Load a JSON list of catalog items into the database."""
    rows = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(rows, list):
        raise click.BadParameter("expected a JSON list of items", param_hint="PATH")
    created = seed_items(rows)
    click.echo(f"seeded {created} item(s)")


@catalog_cli.command("search")
@click.option("--name", default="", help="Name substring")
@click.option("--size", default="")
@click.option("--element", default="")
@click.option("--mode", type=click.Choice([m.value for m in FilterMode]), default="all")
@click.option("--min-price", default="")
@click.option("--max-price", default="")
@click.option("--page", type=int, default=1)
@click.option("--limit", type=int, default=10)
@click.option("--api", default=API_BASE, show_default=True, help="Catalog service URL")
def search_command(name, size, element, mode, min_price, max_price, page, limit, api) -> None:
    """Query a running catalog service through the catalog controller."""
    ctl = CatalogController(client=CatalogClient(base_url=api), limit=limit, settle_delay=0)
    ctl.apply_filters(
        name_filter=name,
        size_filter=size,
        element_filter=element,
        min_price_filter=min_price,
        max_price_filter=max_price,
        filter_mode=mode,
    )
    if page != 1:
        ctl.update_pagination(page)
    ctl.flush()

    if ctl.error:
        ctl.close()
        raise click.ClickException(ctl.error)
    for item in ctl.items:
        history = ctl.price_histories.get(item["_id"], [])
        click.echo(
            f"{item['_id']:>5}  {item['names'][0]:<30} {item['size']:<3} "
            f"{item['element']:<10} {item['currentPrice']:>10.2f}  ({len(history)} prices)"
        )
    p = ctl.pagination
    click.echo(f"page {p.page}/{p.pages} - {p.total} item(s)")
    ctl.close()
