import random

from associate_eip.control.errors import AllAddressesInUse, NoAddressesFound


def _is_associated(address: dict) -> bool:
    return bool(address.get("AssociationId"))


def select_address(network, filters: list[dict], allow_reassociation: bool,
                   rng=random, on_status=None) -> str:
    """Pick one Elastic IP allocation id out of those matching ``filters``.

    Unassociated addresses are preferred. When every match is in use the
    whole set becomes the pool, but only if reassociation is allowed. A
    single-member pool is returned without drawing from ``rng``.
    """
    def notify(message):
        if on_status:
            on_status(message)

    addresses = network.describe_addresses(filters)
    if not addresses:
        raise NoAddressesFound("No Elastic IP addresses match the filters")
    notify(f"Found {len(addresses)} addresses.")

    pool = [a for a in addresses if not _is_associated(a)]
    if not pool:
        if not allow_reassociation:
            raise AllAddressesInUse(
                f"All {len(addresses)} matching addresses are already associated "
                f"and reassociation is not allowed"
            )
        notify(f"All {len(addresses)} addresses are in use, reassociation allowed.")
        pool = addresses

    if len(pool) == 1:
        allocation_id = pool[0]["AllocationId"]
        notify(f"Only {allocation_id} left.")
        return allocation_id

    allocation_id = rng.choice(pool)["AllocationId"]
    notify(f"Picked {allocation_id} at random from {len(pool)} candidates.")
    return allocation_id
