"""
VPC network exposure checks

All rules fan out over the scan's region set; each region is evaluated
independently and verdicts are kept in region order.
"""

from typing import Any, Dict, Iterator, List, Optional

from ..core.framework import ComplianceChecker, Resource, Rule, Verdict
from ..core.provider import RegionContext

VPC = "aws/vpc"
SECURITY_GROUP = "aws/security-group"

SSH_PORT = 22
TCP_PROTOCOLS = ("tcp", "6")
IPV4_ANY = "0.0.0.0/0"
IPV6_ANY = "::/0"


def _opens_ssh(permission: Dict[str, Any]) -> bool:
    if str(permission.get('IpProtocol')) not in TCP_PROTOCOLS:
        return False
    from_port = permission.get('FromPort', 0)
    to_port = permission.get('ToPort', 0)
    return from_port <= SSH_PORT <= to_port


def open_ssh_source(security_group: Dict[str, Any]) -> Optional[str]:
    """Return "IPv4" or "IPv6" for the first inbound rule opening SSH to the world

    Inbound rules are scanned in order, IPv4 ranges of a rule before its IPv6
    ranges. Remaining rules are not examined once one matches.
    """
    for permission in security_group.get('IpPermissions', []):
        if not _opens_ssh(permission):
            continue
        if any(r.get('CidrIp') == IPV4_ANY for r in permission.get('IpRanges', [])):
            return "IPv4"
        if any(r.get('CidrIpv6') == IPV6_ANY for r in permission.get('Ipv6Ranges', [])):
            return "IPv6"
    return None


class NetworkChecker(ComplianceChecker):
    """Network exposure rules for VPCs and security groups"""

    service = "vpc"
    description = "Amazon Virtual Private Cloud - flow logs, security groups"

    def rules(self) -> List[Rule]:
        return [
            Rule("vpc_flow_logs",
                 "VPC flow logs must be enabled",
                 self.check_flow_logs),
            Rule("vpc_default_security_group",
                 "VPC default security group must have no inbound or outbound rules",
                 self.check_default_security_group),
            Rule("vpc_restricted_ssh",
                 "SSH must not be accessible from 0.0.0.0/0 or ::/0",
                 self.check_restricted_ssh),
        ]

    def check_flow_logs(self, rule: Rule) -> Iterator[Verdict]:
        def evaluate(region: RegionContext) -> List[Verdict]:
            verdicts = []
            for vpc in self.aws_provider.describe_vpcs(region):
                resource = Resource(VPC, vpc['VpcId'])
                if self.aws_provider.describe_flow_logs(region, vpc['VpcId']):
                    verdicts.append(rule.verdict(resource, True))
                else:
                    verdicts.append(rule.verdict(resource, False, "VPC flow logs are not enabled"))
            return verdicts

        return iter(self.fan_out(evaluate, self.regions.contexts()))

    def check_default_security_group(self, rule: Rule) -> Iterator[Verdict]:
        def evaluate(region: RegionContext) -> List[Verdict]:
            verdicts = []
            for vpc in self.aws_provider.describe_vpcs(region):
                security_groups = self.aws_provider.describe_security_groups(region, [
                    {'Name': 'group-name', 'Values': ['default']},
                    {'Name': 'vpc-id', 'Values': [vpc['VpcId']]},
                ])
                for sg in security_groups:
                    resource = Resource(SECURITY_GROUP, sg['GroupId'])
                    if not sg.get('IpPermissions') and not sg.get('IpPermissionsEgress'):
                        verdicts.append(rule.verdict(resource, True))
                    else:
                        verdicts.append(rule.verdict(
                            resource, False,
                            "Default security group has inbound or outbound rules"))
            return verdicts

        return iter(self.fan_out(evaluate, self.regions.contexts()))

    def check_restricted_ssh(self, rule: Rule) -> Iterator[Verdict]:
        def evaluate(region: RegionContext) -> List[Verdict]:
            verdicts = []
            for vpc in self.aws_provider.describe_vpcs(region):
                security_groups = self.aws_provider.describe_security_groups(region, [
                    {'Name': 'vpc-id', 'Values': [vpc['VpcId']]},
                ])
                for sg in security_groups:
                    resource = Resource(SECURITY_GROUP, sg['GroupId'])
                    source = open_ssh_source(sg)
                    if source is None:
                        verdicts.append(rule.verdict(resource, True))
                    else:
                        verdicts.append(rule.verdict(
                            resource, False, f"SSH is accessible from all {source} Addresses"))
            return verdicts

        return iter(self.fan_out(evaluate, self.regions.contexts()))
