# app/cli.py
import logging

import typer

from app.config import LOG_LEVEL, TRENDING_WINDOW_DAYS
from app.db import get_session, init_db
from app.services import seeder
from app.services.feed import compute_trending
from app.services.hashtags import trending_hashtags
from app.services.reports import get_counter_drift, repair_counters

app = typer.Typer(help="Social backend CLI with subcommands")


@app.callback()
def main():
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")


@app.command("initdb")
def initdb_cmd():
    """Wait for the database and create any missing tables."""
    try:
        init_db()
    except Exception as e:
        typer.echo(f"❌ Database initialization failed: {e}", err=True)
        raise typer.Exit(1)
    typer.echo("✓ Database ready")


@app.command("seed")
def seed_cmd(
    users: int = typer.Option(200, help="Number of users"),
    posts: int = typer.Option(2000, help="Number of posts"),
    max_following: int = typer.Option(20, help="Maximum accounts each user follows"),
    max_likes: int = typer.Option(40, help="Maximum likes per post"),
):
    """Populate the database with mock data through the regular services."""
    # Set deterministic seeds for reproducible data
    seeder.seed_random_generators()

    with get_session() as db:
        us = seeder.make_users(db, users)
        follows = seeder.make_follows(db, us, max_following=max_following)
        ps = seeder.make_posts(db, us, posts)
        seeder.make_comments(db, ps, us, frac_with_threads=0.6)
        seeder.make_likes(db, ps, us, max_likes=max_likes)
    typer.echo(f"Seed complete: users={users}, posts={posts}, follows={follows}")


@app.command("trending")
def trending_cmd(
    days: int = typer.Option(
        TRENDING_WINDOW_DAYS, "--days", "-d", help="Trailing window in days (1-90)", min=1, max=90
    ),
    k: int = typer.Option(10, "--k", "-k", help="Number of posts to show (1-100)", min=1, max=100),
):
    """Show the highest scoring posts of the trailing window."""
    try:
        with get_session() as db:
            result = compute_trending(db, page=1, page_size=k, window_days=days)
    except Exception as e:
        typer.echo(f"❌ Error getting trending posts: {e}", err=True)
        raise typer.Exit(1)

    if not result.items:
        typer.echo(f"No posts found in the last {days} days")
        return

    typer.echo(f"\n🔥 Top {len(result.items)} trending posts (last {days} days):")
    typer.echo("─" * 70)
    for i, post in enumerate(result.items, 1):
        preview = (post["content"] or post["media_url"] or "")[:40]
        typer.echo(
            f"{i:2d}. [{post['engagement_score']:>5,}] @{post['username']:<16} "
            f"♥{post['likes_count']:<5} 💬{post['comments_count']:<5} {preview}"
        )


@app.command("trending-hashtags")
def trending_hashtags_cmd(
    days: int = typer.Option(
        TRENDING_WINDOW_DAYS, "--days", "-d", help="Trailing window in days (1-90)", min=1, max=90
    ),
    k: int = typer.Option(10, "--k", "-k", help="Number of hashtags to show (1-100)", min=1, max=100),
):
    """Show hashtags ranked by posts inside the trailing window."""
    try:
        with get_session() as db:
            rows = trending_hashtags(db, limit=k, window_days=days)
    except Exception as e:
        typer.echo(f"❌ Error getting trending hashtags: {e}", err=True)
        raise typer.Exit(1)

    if not rows:
        typer.echo("No hashtags indexed yet")
        return

    typer.echo(f"\n🔥 Top {len(rows)} trending hashtags (last {days} days):")
    typer.echo("─" * 50)
    for i, row in enumerate(rows, 1):
        typer.echo(f"{i:2d}. #{row['tag']:<20} ({row['recent_posts']:,} recent, {row['usage_count']:,} total)")


@app.command("check-counters")
def check_counters_cmd(
    limit: int = typer.Option(20, "--limit", "-l", help="Rows reported per counter (1-1000)", min=1, max=1000),
    fix: bool = typer.Option(False, "--fix", help="Overwrite drifted counters with actual counts"),
):
    """Compare stored counters with the relations they mirror."""
    try:
        with get_session() as db:
            drift = get_counter_drift(db, limit=limit)
            repaired = repair_counters(db) if fix and drift else 0
    except Exception as e:
        typer.echo(f"❌ Error checking counters: {e}", err=True)
        raise typer.Exit(1)

    if not drift:
        typer.echo("✓ All counters match their relations")
        return

    typer.echo(f"\n⚠️  {len(drift)} drifted counters:")
    typer.echo("─" * 60)
    typer.echo(f"{'Table':<8} {'Column':<16} {'Row':<8} {'Stored':<8} {'Actual':<8}")
    for row in drift:
        typer.echo(
            f"{row['table']:<8} {row['column']:<16} {row['row_id']:<8} {row['stored']:<8} {row['actual']:<8}"
        )
    if fix:
        typer.echo(f"\n✓ Repaired {repaired} rows")
    else:
        typer.echo("\nRun again with --fix to repair")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
