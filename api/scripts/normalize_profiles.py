import argparse
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from rishta import repo
from rishta.services.normalization import normalize_profile


def changed_fields(before: dict, after: dict) -> dict:
    return {
        k: (before.get(k), after.get(k))
        for k in repo.EDITABLE_PROFILE_COLUMNS
        if k in after and before.get(k) != after.get(k)
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Re-run write-time normalization over stored profiles")
    parser.add_argument("--batch-size", type=int, default=200)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    offset = 0
    scanned = 0
    updated = 0
    while True:
        batch = repo.list_profiles(offset=offset, limit=args.batch_size)
        if not batch:
            break
        for profile in batch:
            scanned += 1
            diff = changed_fields(profile, normalize_profile(profile))
            if not diff:
                continue
            updated += 1
            print(f"{profile['user_id']}: {', '.join(sorted(diff))}")
            if not args.dry_run:
                repo.upsert_profile(profile["user_id"], {k: new for k, (_, new) in diff.items()})
        offset += len(batch)

    mode = "would update" if args.dry_run else "updated"
    print(f"scanned={scanned} {mode}={updated}")


if __name__ == "__main__":
    main()
