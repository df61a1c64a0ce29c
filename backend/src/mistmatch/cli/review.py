"""CLI commands for the moderation console.

Provides commands for inspecting the pending queue, deciding pending
users, and reviewing and correcting genders.
"""

import asyncio
import json
import sys

import click

from ..db import close_db
from ..records import get_record_source
from ..review.models import FILTER_ALL, Decision, Gender, SortDirection
from ..review.session import gender_review_session, pending_review_session
from ..storage import get_photo_resolver


@click.command("pending")
@click.option("--limit", "-l", default=None, type=int, help="Entries to show (default: whole queue)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def pending(limit: int | None, as_json: bool) -> None:
    """Show the pending-verification queue."""

    async def _pending() -> None:
        photos = get_photo_resolver()
        try:
            async with pending_review_session(get_record_source(), photos, auto_refresh=False) as session:
                queue = session.queue
                entries = queue.queue[:limit] if limit else queue.queue

                if as_json:
                    data = {
                        "total_pending": queue.total_pending,
                        "has_more": queue.has_more,
                        "items": [e.model_dump(mode="json") for e in entries],
                    }
                    click.echo(json.dumps(data, indent=2))
                    return

                click.echo(f"Pending users ({queue.total_pending} total, {len(queue.queue)} queued):")
                click.echo("")
                for entry in entries:
                    click.echo(f"  {entry.id}")
                    click.echo(f"    Name: {entry.name or 'Anonymous'}")
                    click.echo(f"    Details: {entry.age} / {entry.gender or 'Not specified'} / {entry.country}")
                    click.echo(f"    Verification photos: {len(entry.verification_photos)}")
                    click.echo(f"    Created: {entry.created_at}")
                if queue.has_more:
                    click.echo("")
                    click.echo("  More pending users beyond this batch.")
        finally:
            await photos.close()
            await close_db()

    asyncio.run(_pending())


@click.command("decide")
@click.argument("user_id")
@click.argument("decision", type=click.Choice([d.value for d in Decision]))
def decide(user_id: str, decision: str) -> None:
    """Approve or reject a pending user."""

    async def _decide() -> bool:
        photos = get_photo_resolver()
        try:
            async with pending_review_session(get_record_source(), photos, auto_refresh=False) as session:
                if user_id not in session.queue.state.queue_ids:
                    # Deciding outside the first batch: bring the whole snapshot into view
                    while session.queue.append_next_batch():
                        pass
                result = await session.decisions.apply_decision(user_id, decision)
        finally:
            await photos.close()
            await close_db()

        if result.success:
            click.echo(f"User {user_id}: {Decision(decision).status.value}")
        else:
            click.echo(f"Failed to {decision} user {user_id}: {result.error}", err=True)
        return result.success

    if not asyncio.run(_decide()):
        sys.exit(1)


@click.command("genders")
@click.option("--filter", "-f", "gender_filter", default=FILTER_ALL, help="all, unknown, or a gender value")
@click.option("--sort", "-s", type=click.Choice([d.value for d in SortDirection]), default="desc", help="Creation-time order")
@click.option("--page", "-p", default=1, type=int, help="Page number")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def genders(gender_filter: str, sort: str, page: int, as_json: bool) -> None:
    """List users for gender review."""

    async def _genders() -> None:
        try:
            async with gender_review_session(get_record_source()) as review:
                review.set_filter(gender_filter)
                review.set_sort(sort)
                review.set_page(page)

                if as_json:
                    data = {
                        "page": review.page,
                        "total_pages": review.total_pages,
                        "matching": len(review.view),
                        "unknown_count": review.unknown_count,
                        "items": [r.model_dump(mode="json") for r in review.page_items],
                    }
                    click.echo(json.dumps(data, indent=2))
                    return

                click.echo(
                    f"Users matching '{gender_filter}': {len(review.view)} "
                    f"(page {review.page} of {max(1, review.total_pages)}, "
                    f"{review.unknown_count} without gender)"
                )
                click.echo("")
                for record in review.page_items:
                    click.echo(f"  {record.id}  {record.name or 'Anonymous':<24} {record.gender or '-':<8} {record.created_at}")
        finally:
            await close_db()

    asyncio.run(_genders())


@click.command("set-gender")
@click.argument("user_id")
@click.argument("gender", type=click.Choice([g.value for g in Gender]))
def set_gender(user_id: str, gender: str) -> None:
    """Correct the gender of a user."""

    async def _set_gender() -> bool:
        try:
            async with gender_review_session(get_record_source()) as review:
                result = await review.update_gender(user_id, gender)
        finally:
            await close_db()

        if result.success:
            click.echo(f"User {user_id}: gender set to {gender}")
        else:
            click.echo(f"Failed to update gender for {user_id}: {result.error}", err=True)
        return result.success

    if not asyncio.run(_set_gender()):
        sys.exit(1)
