"""
IAM compliance checks
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, List

from ..core.framework import ComplianceChecker, Resource, Rule, Verdict
from ..core.policy import PolicyDocument

USER = "aws/iam-user"
ACCESS_KEY = "aws/iam-access-key"
POLICY = "aws/iam-policy"

ROOT = Resource(USER, "root")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IdentityChecker(ComplianceChecker):
    """Credential hygiene and least-privilege rules for IAM"""

    service = "iam"
    description = "Identity and Access Management - users, access keys, policies"

    def __init__(self, aws_provider, regions, config=None,
                 clock: Callable[[], datetime] = utc_now):
        super().__init__(aws_provider, regions, config)
        self.clock = clock

    @property
    def credential_max_age(self) -> timedelta:
        days = self.config.credential_max_age_days if self.config else 90
        return timedelta(days=days)

    def rules(self) -> List[Rule]:
        return [
            Rule("iam_console_mfa",
                 "IAM users with console access must have MFA enabled",
                 self.check_console_mfa),
            Rule("iam_unused_credentials",
                 f"IAM users must not have credentials unused in the last "
                 f"{self.credential_max_age.days} days",
                 self.check_unused_credentials),
            Rule("iam_root_mfa",
                 "Root account must have MFA enabled",
                 self.check_root_mfa),
            Rule("iam_root_access_keys",
                 "Root account must not have access keys",
                 self.check_root_access_keys),
            Rule("iam_admin_policy_statements",
                 "IAM policies must not have statements with admin access",
                 self.check_admin_policy_statements),
            Rule("iam_no_user_policies",
                 "IAM users must not have policies attached",
                 self.check_no_user_policies),
        ]

    def check_console_mfa(self, rule: Rule) -> Iterator[Verdict]:
        for user in self.aws_provider.list_users():
            resource = Resource(USER, user['Arn'])

            # Without a login profile the user cannot sign in to the console
            if self.aws_provider.get_login_profile(user['UserName']) is None:
                yield rule.verdict(resource, True, "User does not have console access")
                continue

            if self.aws_provider.list_mfa_devices(user['UserName']):
                yield rule.verdict(resource, True)
            else:
                yield rule.verdict(resource, False, "User does not have MFA enabled")

    def check_unused_credentials(self, rule: Rule) -> Iterator[Verdict]:
        now = self.clock()
        max_age = self.credential_max_age

        for user in self.aws_provider.list_users():
            for access_key in self.aws_provider.list_access_keys(user['UserName']):
                if access_key.get('Status') != 'Active':
                    continue

                key_id = access_key['AccessKeyId']
                resource = Resource(ACCESS_KEY, key_id)
                last_used = self.aws_provider.get_access_key_last_used(key_id)

                if last_used is not None and last_used + max_age < now:
                    yield rule.verdict(
                        resource, False,
                        f"User has credentials unused for more than {max_age.days} days")
                else:
                    yield rule.verdict(resource, True)

    def check_root_mfa(self, rule: Rule) -> Iterator[Verdict]:
        summary = self.aws_provider.get_account_summary()
        if summary.get('AccountMFAEnabled', 0) == 0:
            yield rule.verdict(ROOT, False, "Root account does not have MFA enabled")
        else:
            yield rule.verdict(ROOT, True)

    def check_root_access_keys(self, rule: Rule) -> Iterator[Verdict]:
        summary = self.aws_provider.get_account_summary()
        if summary.get('AccountAccessKeysPresent', 0) != 0:
            yield rule.verdict(ROOT, False, "Root account has access keys")
        else:
            yield rule.verdict(ROOT, True)

    def check_admin_policy_statements(self, rule: Rule) -> Iterator[Verdict]:
        include_lists = bool(self.config and self.config.flag_list_wildcards)

        # Only customer managed policies
        for policy in self.aws_provider.list_policies(scope='Local'):
            policy_arn = policy['Arn']
            raw_document = self.aws_provider.get_policy_version(
                policy_arn, policy['DefaultVersionId'])
            document = PolicyDocument.parse(policy_arn, raw_document)

            resource = Resource(POLICY, policy_arn)
            statement = document.first_admin_statement(include_lists)
            if statement is not None:
                self.logger.debug(f"Admin statement {statement.sid or ''} in {policy_arn}")
                yield rule.verdict(resource, False, "Policy has statement with admin access")
            else:
                yield rule.verdict(resource, True)

    def check_no_user_policies(self, rule: Rule) -> Iterator[Verdict]:
        for user in self.aws_provider.list_users():
            user_name = user['UserName']
            resource = Resource(USER, user_name)

            if self.aws_provider.list_user_policies(user_name):
                yield rule.verdict(resource, False, "User has inline policies attached")
            elif self.aws_provider.list_attached_user_policies(user_name):
                yield rule.verdict(resource, False, "User has managed policies attached")
            else:
                yield rule.verdict(resource, True)
