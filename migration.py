"""One-shot data repair: file legacy duels under the default event."""

from database import Database
from utils import Colors, log


async def get_migration_count(db: Database, owner_id: str) -> int:
    """Number of the owner's duels that still lack an event."""
    return await db.count_duels_without_event(owner_id)


async def check_migration_needed(db: Database, owner_id: str) -> bool:
    """Whether the owner has any duels without an event."""
    return await get_migration_count(db, owner_id) > 0


async def migrate_existing_duels_to_default_event(db: Database, owner_id: str) -> int:
    """Assign the default event to every duel that has no event.

    Creates the default event if needed. Safe to run repeatedly; returns the
    number of duels migrated by this call.
    """
    try:
        default_event = await db.get_or_create_default_event(owner_id)
        migrated = await db.assign_event_to_unfiled_duels(owner_id, default_event.id)
    except Exception as e:
        log("MIGRATION", f"Migration failed for {owner_id}: {e}", Colors.RED)
        raise

    log(
        "MIGRATION",
        f"Migrated {migrated} duel(s) to '{default_event.name}' (id={default_event.id}) for {owner_id}",
        Colors.GREEN,
    )
    return migrated
