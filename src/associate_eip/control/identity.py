from associate_eip.aws.imds import (
    INSTANCE_ID_PATH,
    INTERFACE_ID_PATH,
    MAC_PATH,
    REGION_PATH,
)


class InstanceIdentity:
    """Facts about the running instance, each fetched from IMDS at most once.

    The first lookup of a fact prints it through ``on_status``; later calls
    return the cached value without touching IMDS.
    """

    def __init__(self, imds, on_status=None):
        self.imds = imds
        self.on_status = on_status
        self._region: str | None = None
        self._instance_id: str | None = None
        self._mac_address: str | None = None
        self._network_interface_id: str | None = None

    def _notify(self, message: str) -> None:
        if self.on_status:
            self.on_status(message)

    def region(self) -> str:
        if self._region is None:
            self._region = self.imds.get(REGION_PATH)
            self._notify(f"Region: {self._region}")
        return self._region

    def instance_id(self) -> str:
        if self._instance_id is None:
            self._instance_id = self.imds.get(INSTANCE_ID_PATH)
            self._notify(f"Instance ID: {self._instance_id}")
        return self._instance_id

    def mac_address(self) -> str:
        if self._mac_address is None:
            self._mac_address = self.imds.get(MAC_PATH)
            self._notify(f"MAC: {self._mac_address}")
        return self._mac_address

    def network_interface_id(self) -> str:
        if self._network_interface_id is None:
            mac = self.mac_address()
            self._network_interface_id = self.imds.get(INTERFACE_ID_PATH.format(mac=mac))
            self._notify(f"Network Interface ID: {self._network_interface_id}")
        return self._network_interface_id
