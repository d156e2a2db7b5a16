import os

import boto3
from botocore.exceptions import ClientError

from associate_eip.control.errors import AssignmentRejected, AssociationConflict


ENDPOINT_ENV = "AWS_EC2_ENDPOINT"
ALREADY_ASSOCIATED = "Resource.AlreadyAssociated"


def _is_client_error(exc: ClientError, code: str) -> bool:
    return exc.response["Error"]["Code"] == code


def _error_message(exc: ClientError) -> str:
    error = exc.response.get("Error", {})
    return f"{error.get('Code', 'Unknown')}: {error.get('Message', exc)}"


def make_ec2_client(region: str, endpoint_url: str | None = None):
    """Build the EC2 client. AWS_EC2_ENDPOINT overrides the endpoint."""
    endpoint_url = endpoint_url or os.environ.get(ENDPOINT_ENV) or None
    return boto3.client("ec2", region_name=region, endpoint_url=endpoint_url)


class Ec2Network:
    """The four EC2 calls needed to reconcile an instance's addresses."""

    def __init__(self, client):
        self.client = client

    def describe_addresses(self, filters: list[dict]) -> list[dict]:
        """Find Elastic IPs matching the filters. An empty list matches all."""
        response = self.client.describe_addresses(Filters=filters)
        return response.get("Addresses", [])

    def associate_address(self, allocation_id: str, instance_id: str,
                          allow_reassociation: bool) -> dict:
        try:
            return self.client.associate_address(
                AllocationId=allocation_id,
                InstanceId=instance_id,
                AllowReassociation=allow_reassociation,
            )
        except ClientError as e:
            if _is_client_error(e, ALREADY_ASSOCIATED):
                raise AssociationConflict(
                    f"{allocation_id} is already associated and reassociation "
                    f"is not allowed ({_error_message(e)})"
                ) from e
            raise

    def assign_private_ip(self, interface_id: str, address: str) -> dict:
        try:
            return self.client.assign_private_ip_addresses(
                NetworkInterfaceId=interface_id,
                PrivateIpAddresses=[address],
            )
        except ClientError as e:
            raise AssignmentRejected(
                f"Could not assign {address} to {interface_id} ({_error_message(e)})"
            ) from e

    def assign_ipv6(self, interface_id: str, address: str) -> dict:
        try:
            return self.client.assign_ipv6_addresses(
                NetworkInterfaceId=interface_id,
                Ipv6Addresses=[address],
            )
        except ClientError as e:
            raise AssignmentRejected(
                f"Could not assign {address} to {interface_id} ({_error_message(e)})"
            ) from e
