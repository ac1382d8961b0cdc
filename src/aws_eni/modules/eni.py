"""Elastic Network Interface (ENI) lifecycle for the running instance"""

from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Union

import boto3
from botocore.exceptions import ClientError

from ..config import ENIConfig
from ..core import BaseClient, BaseDisplay, get_logger, wait_until
from ..environment import Environment
from ..errors import (
    AWSPermissionError,
    ENIError,
    ErrorKind,
    InvalidParameterError,
    LocalPermissionError,
    UnknownInterfaceError,
    WaitTimeoutError,
    error_code,
)
from ..local import DeviceRef, LocalInterface, LocalInterfaces
from ..meta import MetadataConnector, MetadataReader
from ..models import (
    AddressLookup,
    AssignResult,
    AssociateResult,
    AttachResult,
    CleanResult,
    CreateResult,
    DetachResult,
    DissociateResult,
    ElasticIPResult,
    UnassignResult,
    parse_resource_filter,
)
from ..ownership import OwnershipPolicy

logger = get_logger("eni")

# Dry-run checks for every EC2 call we make (assign_private_ip_addresses has
# no DryRun support)
ACCESS_CHECKS = {
    "describe_network_interfaces": {},
    "create_network_interface": {"SubnetId": "subnet-abcd1234"},
    "attach_network_interface": {
        "NetworkInterfaceId": "eni-abcd1234",
        "InstanceId": "i-abcd1234",
        "DeviceIndex": 0,
    },
    "detach_network_interface": {"AttachmentId": "eni-attach-abcd1234"},
    "delete_network_interface": {"NetworkInterfaceId": "eni-abcd1234"},
    "create_tags": {"Resources": ["eni-abcd1234"], "Tags": []},
    "describe_addresses": {},
    "allocate_address": {},
    "release_address": {"AllocationId": "eipalloc-no_exist"},
    "associate_address": {
        "AllocationId": "eipalloc-no_exist",
        "NetworkInterfaceId": "eni-abcd1234",
    },
}

# Codes a dry run answers with when we would have been allowed
ALLOWED_CHECK_CODES = {"DryRunOperation", "InvalidAllocationID.NotFound"}


def _first_given(*values):
    return next((v for v in values if v is not None), None)


class ENIClient(BaseClient):
    """Creates, attaches, detaches and cleans up ENIs of this instance.

    Every mutating call is followed by a bounded wait for EC2 to report the
    new state, since the API has no blocking variants. Nothing is rolled back
    when a step fails; the operations are safe to re-run by id.
    """

    def __init__(
        self,
        profile: Optional[str] = None,
        session: Optional[boto3.Session] = None,
        config: Optional[ENIConfig] = None,
        local: Optional[LocalInterfaces] = None,
        environment: Optional[Environment] = None,
        ec2: Any = None,
    ):
        super().__init__(profile, session)
        self.config = config or ENIConfig()
        self.local = local
        self.environment = environment or Environment(
            MetadataReader(MetadataConnector.from_config(self.config)),
            hwaddr=(lambda: local.first().hwaddr) if local is not None else None,
        )
        self.ownership = OwnershipPolicy(self.config.owner_tag, self.config.grace_window)
        self._ec2 = ec2

    @property
    def ec2(self):
        if self._ec2 is None:
            self._ec2 = self.client("ec2", region_name=self.environment.get().region)
        return self._ec2

    # ------------------------------------------------------------------
    # local configuration

    def devices(self) -> LocalInterfaces:
        if self.local is None:
            raise ENIError("This operation requires a local interface backend")
        return self.local

    def can_modify_ifconfig(self) -> bool:
        return self.devices().is_mutable()

    def assert_ifconfig_access(self):
        if not self.can_modify_ifconfig():
            raise LocalPermissionError("Insufficient user priveleges (try sudo)")

    def list_interfaces(self, ref: Optional[DeviceRef] = None) -> list[dict]:
        self.environment.get()
        return [device.to_dict() for device in self.devices().filter(ref)]

    def configure(self, ref: Optional[DeviceRef] = None, dry_run: bool = False) -> int:
        """Sync local config with EC2; with dry_run only count the differences."""
        self.environment.get()
        if not dry_run:
            self.assert_ifconfig_access()
        return self.devices().configure(ref, dry_run=dry_run)

    def deconfigure(self, ref: Optional[DeviceRef] = None):
        self.environment.get()
        self.assert_ifconfig_access()
        self.devices().deconfigure(ref)

    def _resolve_device(
        self,
        ref: Optional[DeviceRef],
        exists: Optional[bool] = True,
        device_name: Optional[str] = None,
        device_number: Optional[Union[int, str]] = None,
        interface_id: Optional[str] = None,
        private_ip: Optional[str] = None,
    ) -> LocalInterface:
        """Look up a device and check it agrees with every field given."""
        device = self.devices().get(ref)
        if exists is True and not device.exists():
            raise UnknownInterfaceError(f"Interface {device.name} does not exist")
        if exists is False and device.exists():
            raise InvalidParameterError(f"Interface {device.name} is already in use")

        if device_name is not None and device_name != device.name:
            raise InvalidParameterError(
                f"Device name {device_name} does not match {device.name}"
            )
        if device_number is not None and int(device_number) != device.device_number:
            raise InvalidParameterError(
                f"Device number {device_number} does not match {device.name}"
                f" (device {device.device_number})"
            )
        if interface_id is not None and interface_id != device.interface_id:
            raise InvalidParameterError(
                f"Interface id {interface_id} does not match {device.name}"
                f" ({device.interface_id})"
            )
        if private_ip is not None and private_ip not in device.local_ips:
            raise InvalidParameterError(f"IP {private_ip} not found on {device.name}")
        return device

    # ------------------------------------------------------------------
    # EC2 lookups

    def _wait(
        self,
        description: str,
        predicate: Callable,
        interval: Optional[float] = None,
        tolerate: Iterable[ErrorKind] = (),
    ):
        return wait_until(
            description,
            predicate,
            interval=interval,
            tolerate=tolerate,
            config=self.config,
        )

    def _describe(self, interface_id: str) -> Optional[dict]:
        resp = self.ec2.describe_network_interfaces(NetworkInterfaceIds=[interface_id])
        interfaces = resp.get("NetworkInterfaces", [])
        return interfaces[0] if interfaces else None

    def interface_status(self, interface_id: str) -> Optional[str]:
        interface = self._describe(interface_id)
        return interface["Status"] if interface else None

    def interface_ips(self, interface_id: str) -> list[str]:
        """Private IPs of an interface, primary first."""
        interface = self._describe(interface_id)
        if not interface:
            return []
        addresses = interface.get("PrivateIpAddresses", [])
        return [
            a["PrivateIpAddress"]
            for a in sorted(addresses, key=lambda a: not a.get("Primary"))
        ]

    def describe_address(self, address: str) -> dict:
        """Find an elastic IP by public IP, private IP, allocation or association id."""
        lookup = AddressLookup.parse(address, self.environment.get().vpc_cidr)
        resp = self.ec2.describe_addresses(Filters=lookup.to_filters())
        if not resp.get("Addresses"):
            raise InvalidParameterError(f"IP {address} could not be located")
        return resp["Addresses"][0]

    # ------------------------------------------------------------------
    # interfaces

    def create_interface(
        self,
        subnet_id: Optional[str] = None,
        primary_ip: Optional[str] = None,
        security_groups: Optional[Union[str, list[str]]] = None,
    ) -> CreateResult:
        env = self.environment.get()
        timestamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        params = {
            "SubnetId": subnet_id or self.devices().first().subnet_id,
            "Description": (
                f"generated by {self.config.owner_tag} from {env.instance_id}"
                f" on {timestamp}"
            ),
        }
        if primary_ip:
            params["PrivateIpAddress"] = primary_ip
        if security_groups:
            if isinstance(security_groups, str):
                security_groups = [security_groups]
            params["Groups"] = list(security_groups)

        response = self.ec2.create_network_interface(**params)
        interface = response["NetworkInterface"]
        interface_id = interface["NetworkInterfaceId"]
        logger.info("Created %s in %s", interface_id, interface["SubnetId"])

        tags = self.ownership.ownership_tags(env.instance_id, timestamp)

        def tagged() -> bool:
            if self.interface_status(interface_id) != "available":
                return False
            self.ec2.create_tags(Resources=[interface_id], Tags=tags)
            return True

        # Fresh interfaces may be briefly invisible to describe/create_tags
        self._wait("the interface to be created", tagged, tolerate={ErrorKind.SERVICE})
        return CreateResult(
            interface_id=interface_id,
            subnet_id=interface["SubnetId"],
            api_response=interface,
        )

    def attach_interface(
        self,
        interface_id: str,
        device_number: Optional[int] = None,
        name: Optional[str] = None,
        enable: bool = True,
        configure: bool = True,
        block: bool = False,
    ) -> AttachResult:
        if enable or configure:
            self.assert_ifconfig_access()

        device = self._resolve_device(
            _first_given(device_number, name),
            exists=False,
            device_name=name if device_number is not None else None,
        )
        env = self.environment.get()
        response = self.ec2.attach_network_interface(
            NetworkInterfaceId=interface_id,
            InstanceId=env.instance_id,
            DeviceIndex=device.device_number,
        )
        logger.info("Attaching %s as %s", interface_id, device.name)

        if block or configure or enable:
            # interface_id of a just-attached device comes from the metadata
            # service, which may not know about it yet
            self._wait(
                "the interface to attach",
                lambda: device.exists()
                and self.interface_status(device.interface_id) == "in-use",
                tolerate={ErrorKind.CONNECTION},
            )
        if configure:
            device.configure()
        if enable:
            device.enable()
        return AttachResult(
            interface_id=interface_id,
            device_name=device.name,
            device_number=device.device_number,
            enabled=enable,
            configured=configure,
            api_response=response,
        )

    def detach_interface(
        self,
        ref: Optional[DeviceRef] = None,
        device_name: Optional[str] = None,
        device_number: Optional[int] = None,
        interface_id: Optional[str] = None,
        delete: Optional[bool] = None,
        block: bool = False,
    ) -> DetachResult:
        """Detach an interface, deleting it if asked or if we created it."""
        find = _first_given(ref, interface_id, device_name, device_number)
        if find is None:
            raise InvalidParameterError("No interface given to detach")
        device = self._resolve_device(
            find,
            device_name=device_name,
            device_number=device_number,
            interface_id=interface_id,
        )
        self.assert_ifconfig_access()
        interface_id = device.interface_id
        env = self.environment.get()

        response = self.ec2.describe_network_interfaces(
            Filters=[
                {"Name": "attachment.instance-id", "Values": [env.instance_id]},
                {"Name": "network-interface-id", "Values": [interface_id]},
            ]
        )
        if not response.get("NetworkInterfaces"):
            raise UnknownInterfaceError(
                f"Interface attachment for {interface_id} could not be located"
            )
        interface = response["NetworkInterfaces"][0]

        device.disable()
        device.deconfigure()
        self.ec2.detach_network_interface(
            AttachmentId=interface["Attachment"]["AttachmentId"], Force=True
        )
        logger.info("Detaching %s from %s", interface_id, device.name)

        created_by_us = self.ownership.is_owned_by_us(interface.get("TagSet"))
        do_delete = created_by_us if delete is None else delete

        if block or do_delete:
            self._wait(
                "the interface to detach",
                lambda: not device.exists()
                and self.interface_status(interface_id) == "available",
                interval=self.config.detach_poll_interval,
            )
        if do_delete:
            self.ec2.delete_network_interface(NetworkInterfaceId=interface_id)
            logger.info("Deleted %s", interface_id)
        return DetachResult(
            interface_id=interface_id,
            device_name=device.name,
            device_number=device.device_number,
            created_by_us=created_by_us,
            deleted=do_delete,
            api_response=interface,
        )

    def clean_interfaces(
        self, filter: Optional[str] = None, safe_mode: bool = True
    ) -> CleanResult:
        """Delete unattached interfaces in this VPC.

        In safe mode only interfaces tagged as ours and older than the grace
        window are deleted; an unreadable 'created on' tag does not protect.
        """
        env = self.environment.get()
        filters = [
            {"Name": "vpc-id", "Values": [env.vpc_id]},
            {"Name": "status", "Values": ["available"]},
        ]
        if filter:
            filters.append(parse_resource_filter(filter, env.region).to_filter())
        if safe_mode:
            filters.append({"Name": "tag:created by", "Values": [self.config.owner_tag]})

        paginator = self.ec2.get_paginator("describe_network_interfaces")
        now = datetime.now(timezone.utc)
        skipped, removed = [], []
        # every page is listed before the first delete
        for page in paginator.paginate(Filters=filters):
            for interface in page.get("NetworkInterfaces", []):
                tags = interface.get("TagSet", [])
                if safe_mode and (
                    not self.ownership.is_owned_by_us(tags)
                    or self.ownership.is_young(tags, now)
                ):
                    skipped.append(interface["NetworkInterfaceId"])
                    continue
                removed.append(interface)

        deleted = []
        for interface in removed:
            interface_id = interface["NetworkInterfaceId"]
            self.ec2.delete_network_interface(NetworkInterfaceId=interface_id)
            logger.info("Deleted unattached interface %s", interface_id)
            deleted.append(interface_id)

        if skipped:
            logger.debug("Skipped %d interface(s): %s", len(skipped), skipped)
        return CleanResult(
            count=len(deleted), deleted=deleted, skipped=skipped, api_response=removed
        )

    # ------------------------------------------------------------------
    # private addresses

    def assign_secondary_ip(
        self,
        ref: Optional[DeviceRef] = None,
        private_ip: Optional[str] = None,
        configure: bool = True,
        block: bool = False,
        device_name: Optional[str] = None,
        device_number: Optional[int] = None,
        interface_id: Optional[str] = None,
    ) -> AssignResult:
        """Assign a (given or new) secondary IP and alias it locally."""
        find = _first_given(ref, interface_id, device_name, device_number)
        if find is None:
            raise InvalidParameterError("No interface given to assign an IP to")
        if configure:
            self.assert_ifconfig_access()
        device = self._resolve_device(
            find,
            device_name=device_name,
            device_number=device_number,
            interface_id=interface_id,
        )
        interface_id = device.interface_id
        current_ips = self.interface_ips(interface_id)

        if private_ip:
            if private_ip in current_ips:
                raise InvalidParameterError(
                    f"IP {private_ip} already assigned to {device.name}"
                )
            response = self.ec2.assign_private_ip_addresses(
                NetworkInterfaceId=interface_id,
                PrivateIpAddresses=[private_ip],
                AllowReassignment=False,
            )
            self._wait(
                "private ip address to be assigned",
                lambda: private_ip in self.interface_ips(interface_id),
            )
            new_ip = private_ip
        else:
            response = self.ec2.assign_private_ip_addresses(
                NetworkInterfaceId=interface_id,
                SecondaryPrivateIpAddressCount=1,
                AllowReassignment=False,
            )

            def new_address() -> Optional[str]:
                fresh = [
                    ip for ip in self.interface_ips(interface_id) if ip not in current_ips
                ]
                return fresh[0] if fresh else None

            new_ip = self._wait("new private ip address to be assigned", new_address)
        logger.info("Assigned %s to %s", new_ip, interface_id)

        if configure:
            device.add_alias(new_ip)
            if block and not self.devices().test(new_ip, target=device.gateway):
                raise WaitTimeoutError(
                    f"Timed out waiting for ip address {new_ip} to become active"
                )
        return AssignResult(
            private_ip=new_ip,
            interface_id=interface_id,
            device_name=device.name,
            device_number=device.device_number,
            interface_ips=current_ips + [new_ip],
            api_response=response,
        )

    def unassign_secondary_ip(
        self,
        private_ip: str,
        release: bool = False,
        device_name: Optional[str] = None,
        device_number: Optional[int] = None,
        interface_id: Optional[str] = None,
    ) -> UnassignResult:
        """Remove a secondary IP locally and from EC2.

        With ``release`` an elastic IP associated with it is released too.
        """
        device = self._resolve_device(
            _first_given(device_name, device_number, interface_id, private_ip),
            device_name=device_name,
            device_number=device_number,
            interface_id=interface_id,
        )
        local_ips = device.local_ips
        if local_ips and local_ips[0] == private_ip:
            raise InvalidParameterError(
                "The primary IP address of an interface cannot be unassigned"
            )

        interface = self._describe(device.interface_id)
        if not interface:
            raise UnknownInterfaceError(
                f"Interface {device.interface_id} could not be located"
            )
        addr_info = next(
            (
                a
                for a in interface.get("PrivateIpAddresses", [])
                if a["PrivateIpAddress"] == private_ip
            ),
            None,
        )
        if not addr_info:
            raise InvalidParameterError(f"IP {private_ip} not found on {device.name}")
        if addr_info.get("Primary"):
            raise InvalidParameterError(
                "The primary IP address of an interface cannot be unassigned"
            )
        assoc = addr_info.get("Association") or {}

        device.remove_alias(private_ip)
        response = self.ec2.unassign_private_ip_addresses(
            NetworkInterfaceId=interface["NetworkInterfaceId"],
            PrivateIpAddresses=[private_ip],
        )
        logger.info("Unassigned %s from %s", private_ip, interface["NetworkInterfaceId"])

        released = bool(assoc.get("AllocationId")) and release
        if released:
            self.ec2.release_address(AllocationId=assoc["AllocationId"])
            logger.info("Released %s", assoc.get("PublicIp"))
        return UnassignResult(
            private_ip=private_ip,
            device_name=device.name,
            interface_id=device.interface_id,
            public_ip=assoc.get("PublicIp"),
            allocation_id=assoc.get("AllocationId"),
            association_id=assoc.get("AssociationId"),
            released=released,
            api_response=response,
        )

    # ------------------------------------------------------------------
    # elastic addresses

    def associate_elastic_ip(
        self,
        private_ip: str,
        public_ip: Optional[str] = None,
        allocation_id: Optional[str] = None,
        block: bool = False,
        device_name: Optional[str] = None,
        device_number: Optional[int] = None,
        interface_id: Optional[str] = None,
    ) -> AssociateResult:
        """Associate an elastic IP (given, or newly allocated) with a private IP."""
        device = self._resolve_device(
            _first_given(device_name, device_number, interface_id, private_ip),
            device_name=device_name,
            device_number=device_number,
            interface_id=interface_id,
            private_ip=private_ip,
        )
        existing = device.public_ips.get(private_ip)
        if existing:
            raise InvalidParameterError(
                f"IP {private_ip} already has an associated EIP ({existing})"
            )

        lookup = public_ip or allocation_id
        if lookup:
            eip = self.describe_address(lookup)
            if allocation_id and eip["AllocationId"] != allocation_id:
                raise InvalidParameterError(
                    f"EIP {eip['PublicIp']} ({eip['AllocationId']})"
                    f" does not match {allocation_id}"
                )
        else:
            eip = self.ec2.allocate_address(Domain="vpc")
            logger.info("Allocated %s", eip["PublicIp"])

        response = self.ec2.associate_address(
            NetworkInterfaceId=device.interface_id,
            AllocationId=eip["AllocationId"],
            PrivateIpAddress=private_ip,
            AllowReassociation=False,
        )
        logger.info("Associated %s with %s", eip["PublicIp"], private_ip)

        if block and not self.devices().test(private_ip):
            raise WaitTimeoutError(
                f"Timed out waiting for ip address {private_ip} to become active"
            )
        return AssociateResult(
            private_ip=private_ip,
            device_name=device.name,
            interface_id=device.interface_id,
            public_ip=eip["PublicIp"],
            allocation_id=eip["AllocationId"],
            association_id=response.get("AssociationId"),
            api_response=response,
        )

    def dissociate_elastic_ip(
        self,
        address: str,
        release: bool = False,
        device_name: Optional[str] = None,
        device_number: Optional[int] = None,
        interface_id: Optional[str] = None,
    ) -> DissociateResult:
        eip = self.describe_address(address)
        public_ip = eip["PublicIp"]
        if not eip.get("AssociationId"):
            raise InvalidParameterError(f"EIP {public_ip} is not associated")

        find = _first_given(device_name, device_number, interface_id)
        if find is not None:
            device = self._resolve_device(
                find,
                exists=None,
                device_name=device_name,
                device_number=device_number,
                interface_id=interface_id,
            )
            if device.interface_id != eip.get("NetworkInterfaceId"):
                raise UnknownInterfaceError(
                    f"EIP {public_ip} is not associated with interface"
                    f" {device.name} ({device.interface_id})"
                )
        else:
            try:
                device = self.devices().get(eip.get("NetworkInterfaceId"))
            except UnknownInterfaceError as e:
                raise UnknownInterfaceError(
                    f"EIP {public_ip} is not associated with an interface on this machine"
                ) from e

        self.ec2.disassociate_address(AssociationId=eip["AssociationId"])
        logger.info("Dissociated %s", public_ip)
        if release:
            self.ec2.release_address(AllocationId=eip["AllocationId"])
            logger.info("Released %s", public_ip)
        return DissociateResult(
            private_ip=eip.get("PrivateIpAddress"),
            device_name=device.name,
            interface_id=eip["NetworkInterfaceId"],
            public_ip=public_ip,
            allocation_id=eip["AllocationId"],
            association_id=eip["AssociationId"],
            released=release,
            api_response=eip,
        )

    def allocate_elastic_ip(self) -> ElasticIPResult:
        eip = self.ec2.allocate_address(Domain="vpc")
        logger.info("Allocated %s (%s)", eip["PublicIp"], eip["AllocationId"])
        return ElasticIPResult(
            public_ip=eip["PublicIp"], allocation_id=eip["AllocationId"], api_response=eip
        )

    def release_elastic_ip(self, address: str) -> ElasticIPResult:
        eip = self.describe_address(address)
        if eip.get("AssociationId"):
            raise AWSPermissionError(
                f"Elastic IP {eip['PublicIp']} ({eip['AllocationId']}) is currently in use"
            )
        response = self.ec2.release_address(AllocationId=eip["AllocationId"])
        logger.info("Released %s (%s)", eip["PublicIp"], eip["AllocationId"])
        return ElasticIPResult(
            public_ip=eip["PublicIp"],
            allocation_id=eip["AllocationId"],
            api_response=response,
        )

    # ------------------------------------------------------------------
    # AWS permissions

    def can_access_ec2(self) -> bool:
        """Dry-run every EC2 call we use and report whether all are allowed."""
        for method, params in ACCESS_CHECKS.items():
            try:
                getattr(self.ec2, method)(DryRun=True, **params)
            except ClientError as e:
                code = error_code(e)
                if code in ALLOWED_CHECK_CODES:
                    continue
                if code == "UnauthorizedOperation":
                    logger.warning("Not authorized for ec2:%s", method)
                    return False
                raise
            raise ENIError("Unexpected behavior while testing AWS API access")
        return True

    def assert_ec2_access(self):
        if not self.can_access_ec2():
            raise AWSPermissionError("Insufficient AWS API access")


class ENIDisplay(BaseDisplay):
    def show_environment(self, identity: dict):
        self.console.print(self.record_panel("Instance Environment", identity))

    def show_result(self, title: str, result: dict):
        self.console.print(self.record_panel(title, result))

    def show_clean(self, result: dict):
        if not result["deleted"]:
            self.console.print("[yellow]No interfaces deleted[/]")
        else:
            self.console.print(
                self.id_table(
                    "Deleted Interfaces",
                    [{"id": i} for i in result["deleted"]],
                    [("Interface ID", "green", "id")],
                )
            )
        if result.get("skipped"):
            self.console.print(
                f"[dim]Skipped (too young or not ours): {', '.join(result['skipped'])}[/]",
                highlight=False,
            )
        self.console.print(
            f"\n[dim]Total: {result['count']} Interface(s) deleted[/]", highlight=False
        )
