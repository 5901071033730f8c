"""
Seed Example Data for LoomSheet

This script fills the data directory with:
1. A handful of rolls off each loom, ready for lamination
2. Rolls moved along the lamination path so every dashboard table has rows

Existing rolls are kept; rolls whose serial number already exists are skipped.

Run with: python backend/scripts/seed_example_data.py
"""
from typing import List

from loomsheet.schemas.roll import RollCreate
from loomsheet.services.production import get_production_service

EXAMPLE_ROLLS = [
    # serial, loom, fabric, color, width, gram, mtrs, gw, cw
    ("EX-001", "L1", "Slit", "Natural", 0.5, 2000, 500, 550, 30),
    ("EX-002", "L1", "Slit", "Natural", 0.5, 2000, 480, 525, 28),
    ("EX-003", "L2", "Tube", "Blue", 0.6, 1800, 450, 515, 32),
    ("EX-004", "L2", "Tube", "Blue", 0.6, 1800, 430, 492, 30),
    ("EX-005", "L3", "Slit", "White", 0.45, 2100, 520, 527, 29),
    ("EX-006", "L3", "Slit", "White", 0.45, 2100, 510, 520, 31),
]


def seed_rolls(service) -> List[str]:
    """Create example rolls, returning the ids of the ones created"""
    print("\n🧵 Creating example rolls...")
    existing = {roll.serial_number for roll in service.load_rolls()}
    created = []
    for serial, loom, fabric, color, width, gram, mtrs, gw, cw in EXAMPLE_ROLLS:
        if serial in existing:
            print(f"  ⏭️  {serial} already exists")
            continue
        roll = service.create_roll(RollCreate(
            serial_number=serial,
            operator_name="Example Operator",
            loom_no=loom,
            fabric_type=fabric,
            color=color,
            width=width,
            gram=gram,
            mtrs=mtrs,
            gw=gw,
            cw=cw,
        ))
        created.append(roll.id)
        print(f"  ✅ {serial}: {roll.nw} kg net, {roll.average} g/m ({roll.variance_band})")
    return created


def advance_rolls(service, roll_ids: List[str]) -> None:
    """Move some of the new rolls through lamination"""
    if len(roll_ids) < 4:
        return
    print("\n🚚 Moving rolls along the lamination path...")
    service.send_for_lamination(roll_ids[:4], "Example batch")
    service.mark_received(roll_ids[:3])
    service.send_for_work_order(roll_ids[:2])
    print("  ✅ 4 sent, 3 laminated, 2 ready for work orders")


def main():
    """Main seed function"""
    print("=" * 60)
    print("LoomSheet Example Data Seeder")
    print("=" * 60)

    service = get_production_service()

    try:
        created = seed_rolls(service)
        advance_rolls(service, created)

        print("\n" + "=" * 60)
        print("✅ Seeding complete!")
        print("=" * 60)
        print(f"\n  🧵 Rolls created: {len(created)}")
        print(f"  📁 Data file: {service.roll_store.path}")
    except Exception as e:
        print(f"\n❌ Error: {e}")
        raise


if __name__ == "__main__":
    main()
