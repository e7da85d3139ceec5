import argparse
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from package_pricing.config.settings import configure_logging, get_settings
from package_pricing.engine.matrix import format_price, is_complete, pricing_grid, validate_tiers
from package_pricing.engine.price_resolver import check_parameters, resolve
from package_pricing.services.package_store import PackageStore


def debug(package_id: str, people: int, nights: int, arrival_date: str):
    settings = get_settings()
    store = PackageStore.load_json(settings.package_data)
    package = store.get_package(package_id)

    print(f"Package: {package.name} v{package.version} ({package.currency})")
    print("\nPricing grid:")
    print(pricing_grid(package))

    validation = is_complete(package.pricing_matrix, package.group_size_tiers, package.duration_options)
    print(f"\nMatrix: {validation.filled_cells}/{validation.total_cells} cells filled")
    for error in validation.errors + validate_tiers(package.group_size_tiers):
        print(f"  ! {error}")

    print(f"\n--- Resolving {people} people, {nights} nights, arriving {arrival_date} ---")
    result = resolve(package, people, nights, arrival_date)
    print(result.get_trace_text())

    if result.ok:
        print(f"\nPer person: {package.currency} {format_price(result.price)}")
    else:
        print(f"\n{result.message} ({result.failure.value})")
        for warning in check_parameters(package, people, nights, arrival_date):
            print(f"  {warning.field}: {warning.message} -> {warning.suggested_values}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Trace a package price resolution")
    parser.add_argument("package_id")
    parser.add_argument("people", type=int)
    parser.add_argument("nights", type=int)
    parser.add_argument("arrival_date")
    args = parser.parse_args()

    configure_logging("DEBUG")
    debug(args.package_id, args.people, args.nights, args.arrival_date)
