# ssm_ssh_connect/aws/ec2.py
import logging
from typing import Any, Dict, List

import botocore.exceptions

from ..errors import AmbiguousInstanceError, InstanceNotFoundError, ResolverError
from ..models import InstanceIdentity

log = logging.getLogger(__name__)


def running_instance_filters(instance_name: str) -> List[Dict[str, Any]]:
    # EC2 ANDs separate filters together
    return [
        {"Name": "tag:Name", "Values": [instance_name]},
        {"Name": "instance-state-name", "Values": ["running"]},
    ]


def find_running_instances(ec2, instance_name: str) -> List[Dict[str, Any]]:
    found: List[Dict[str, Any]] = []
    paginator = ec2.get_paginator("describe_instances")
    for page in paginator.paginate(Filters=running_instance_filters(instance_name)):
        for res in page.get("Reservations", []) or []:
            found.extend(res.get("Instances", []) or [])
    return found


def resolve_instance(ec2, instance_name: str) -> InstanceIdentity:
    """
    Look up the single running instance tagged Name=<instance_name>.

    Raises InstanceNotFoundError for zero matches, AmbiguousInstanceError for
    more than one, ResolverError if the EC2 call itself fails.
    """
    try:
        instances = find_running_instances(ec2, instance_name)
    except (botocore.exceptions.ClientError, botocore.exceptions.BotoCoreError) as e:
        raise ResolverError(f"DescribeInstances failed for {instance_name!r}: {e}") from e

    if not instances:
        raise InstanceNotFoundError(instance_name)
    if len(instances) > 1:
        raise AmbiguousInstanceError(instance_name, sorted(i["InstanceId"] for i in instances))

    inst = instances[0]
    az = (inst.get("Placement") or {}).get("AvailabilityZone") or ""
    if not az:
        raise ResolverError(f"instance {inst['InstanceId']} has no availability zone")
    ident = InstanceIdentity(instance_id=inst["InstanceId"], availability_zone=az)
    log.info("resolved %s -> %s in %s (%s)", instance_name, ident.instance_id, ident.region, az)
    return ident
