"""Reconcile the flat cache with the embedded store from the command line.

    python run_reconcile.py           # push cache-only rows, refresh the cache
    python run_reconcile.py --seed    # load the sample inventory first
"""
import sys
import pprint
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()


if __name__ == "__main__":
    try:
        from carmarket.api.deps import get_marketplace, get_store
        from carmarket.sample_data import sample_accounts, sample_listings
    except Exception as e:
        raise SystemExit(f"Failed to import carmarket: {e}")

    store = get_store()
    if store.embedded is None:
        print("Embedded store unavailable; only the flat cache will be refreshed.")

    if "--seed" in sys.argv[1:]:
        saved = get_marketplace().seed(sample_accounts(), sample_listings())
        print(f"Seeded {saved['accounts']} accounts and {saved['listings']} listings.")

    print("Running reconcile()...")
    summary = store.reconcile()
    pprint.pprint(summary)
    raise SystemExit(0 if summary["status"] == "synced" else 1)
