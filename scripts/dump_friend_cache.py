import argparse
import sys
from datetime import datetime, timezone

from friend_plates.cache import effective_ttl_days
from friend_plates.state import SettingsStore
from friend_plates.tables import load_tables, location_names


def _age(last_seen: int) -> str:
    if last_seen <= 0:
        return "never"
    seen = datetime.fromtimestamp(last_seen, timezone.utc)
    days = (datetime.now(timezone.utc) - seen).days
    return f"{seen:%Y-%m-%d %H:%M} ({days}d)"


def main():
    parser = argparse.ArgumentParser(description="Print a persisted friend cache")
    parser.add_argument("--state-dir", default=".friend_plates")
    parser.add_argument("--profile", default="default")
    parser.add_argument("--tables", default=None)
    args = parser.parse_args()

    store = SettingsStore(args.state_dir, args.profile)
    state = store.load()
    if not state:
        print(f"No state found at {store.path}")
        sys.exit(1)

    locations, _jobs = load_tables(args.tables)
    cache = state.get("cache_entries", [])
    manual = state.get("manual_entries", [])
    ttl = effective_ttl_days(int(state.get("ttl_days", 90) or 0))

    print(f"State: {store.path} (version {state.get('version', '?')}, ttl {ttl}d)\n")
    print(f"--- Friend cache ({len(cache)}) ---")
    for row in cache:
        location = location_names(locations, [int(row.get("location_id", 0) or 0)])[0]
        stable_id = int(row.get("stable_id", 0) or 0)
        print(
            f"  {row.get('name', ''):<28} {location:<14} "
            f"{(f'{stable_id:X}' if stable_id else '-'):<18} {_age(int(row.get('last_seen', 0) or 0))}"
        )
    print(f"\n--- Manual friends ({len(manual)}) ---")
    for row in manual:
        location = location_names(locations, [int(row.get("location_id", 0) or 0)])[0]
        print(f"  {row.get('name', ''):<28} {location}")
    print(f"\n--- Allow-listed ids ({len(state.get('allow_list_ids', []))}) ---")
    for stable_id in state.get("allow_list_ids", []):
        print(f"  {int(stable_id):X}")


if __name__ == "__main__":
    main()
