import json
import random

from associate_eip.aws.ec2 import Ec2Network, make_ec2_client
from associate_eip.control.actions import (
    Action,
    AssignIpv4,
    AssignIpv6,
    EipAction,
    describe_action,
)
from associate_eip.control.identity import InstanceIdentity
from associate_eip.control.selector import select_address


class Executor:
    """Apply actions to the running instance, in order, stopping at the first error."""

    def __init__(self, imds, make_client=make_ec2_client, rng=random,
                 on_status=None, on_debug=None):
        self.on_status = on_status
        self.on_debug = on_debug
        self.identity = InstanceIdentity(imds, on_status=self._notify)
        self.make_client = make_client
        self.rng = rng
        self._network: Ec2Network | None = None

    def _notify(self, message: str) -> None:
        if self.on_status:
            self.on_status(message)

    def _debug_callback(self, message: str) -> None:
        if self.on_debug:
            self.on_debug(message)

    @property
    def network(self) -> Ec2Network:
        if self._network is None:
            region = self.identity.region()
            self._network = Ec2Network(self.make_client(region))
        return self._network

    def run(self, actions: list[Action]) -> list[dict]:
        responses = []
        for index, action in enumerate(actions, start=1):
            self._debug_callback(f"Action {index}/{len(actions)}: {describe_action(action)}")
            if isinstance(action, EipAction):
                response = self.associate(action)
            elif isinstance(action, AssignIpv4):
                response = self.assign_ipv4(action)
            elif isinstance(action, AssignIpv6):
                response = self.assign_ipv6(action)
            else:
                raise TypeError(f"Unknown action: {action!r}")
            responses.append(response)
        return responses

    def associate(self, action: EipAction) -> dict:
        if action.allocation_id is not None:
            self._notify(f"Allocation ID: {action.allocation_id}")
        self._notify(f"Allow Reassociation: {str(action.allow_reassociation).lower()}")
        network = self.network
        instance_id = self.identity.instance_id()

        allocation_id = action.allocation_id
        if allocation_id is None:
            filters = [f.to_request() for f in action.filters]
            self._notify(f"Filters: {json.dumps(filters)}")
            allocation_id = select_address(
                network, filters, action.allow_reassociation,
                rng=self.rng, on_status=self._notify,
            )

        response = network.associate_address(
            allocation_id, instance_id, action.allow_reassociation,
        )
        self._debug_callback(f"AssociateAddress response: {response}")
        self._notify("Success!")
        self._notify(f"Association ID: {response.get('AssociationId')}")
        return response

    def assign_ipv4(self, action: AssignIpv4) -> dict:
        network = self.network
        interface_id = self.identity.network_interface_id()
        response = network.assign_private_ip(interface_id, str(action.address))
        self._debug_callback(f"AssignPrivateIpAddresses response: {response}")
        self._notify("Success!")
        self._notify(f"Assigned private IPv4 address {action.address} to {interface_id}")
        return response

    def assign_ipv6(self, action: AssignIpv6) -> dict:
        network = self.network
        interface_id = self.identity.network_interface_id()
        response = network.assign_ipv6(interface_id, str(action.address))
        self._debug_callback(f"AssignIpv6Addresses response: {response}")
        self._notify("Success!")
        self._notify(f"Assigned IPv6 address {action.address} to {interface_id}")
        return response
