"""
Sales Log Verification Script

Verifies data integrity of the exported order history workbook.
Run from project root: python scripts/verify.py

Author: Khalil Bannouri
Version: 4.0.0
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from bistro.core.config import get_settings
from bistro.services.history_export import HistoryExporter

REQUIRED_COLUMNS = ["invoice_id", "customer_name", "payment_method", "total"]


def verify_history() -> bool:
    """Verify the workbook written by /api/orders/export."""
    settings = get_settings()
    excel_file = os.path.join(settings.data_directory, settings.history_filename)

    print("=" * 60)
    print("🔍 SALES LOG VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {excel_file}")
    print("=" * 60)

    if not os.path.exists(excel_file):
        print("\n❌ Sales log not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    try:
        df = pd.DataFrame(HistoryExporter().read_history())
        print(f"\n✅ File loaded successfully!")
    except Exception as e:
        print(f"\n❌ Could not read sales log: {e}")
        return False

    print(f"\n📊 STATISTICS:")
    print(f"   Total Orders: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
        return False
    print(f"\n✅ All required columns present")

    duplicates = df["invoice_id"].duplicated().sum() if len(df) else 0
    if duplicates > 0:
        print(f"\n⚠️ {duplicates} duplicate invoice IDs found!")
    else:
        print(f"✅ No duplicate invoice IDs")

    bad_ids = (~df["invoice_id"].astype(str).str.match(r"^INV-[0-9A-F]{7}$")).sum() if len(df) else 0
    if bad_ids > 0:
        print(f"⚠️ {bad_ids} malformed invoice IDs")
    else:
        print(f"✅ Invoice IDs well-formed")

    if len(df) > 0:
        print(f"\n💰 REVENUE:")
        print(f"   Total: ₹{df['total'].sum():.2f}")
        print(f"   Average: ₹{df['total'].mean():.2f}")
        print(f"\n💳 BY PAYMENT MODE:")
        for method, amount in df.groupby("payment_method")["total"].sum().items():
            print(f"   {method}: ₹{amount:.2f}")

        print(f"\n📋 RECENT ORDERS:")
        print("-" * 60)
        print(df[REQUIRED_COLUMNS].head(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE")
    print("=" * 60)

    return duplicates == 0 and bad_ids == 0


if __name__ == "__main__":
    sys.exit(0 if verify_history() else 1)
