"""Canned ACL helpers.

Canned ACLs (the ``x-amz-acl`` header values) are translated into the
policy statement model before the policy algebra runs, so a bucket made
``public-read`` through an ACL and one made readable through a policy
classify the same way.
"""

from minnow.errors import ConstructionError, PolicyInconsistencyError
from minnow.policy import BucketPolicyDocument, PolicyType, set_policy

ACL_HEADER = "x-amz-acl"

_CANNED_POLICIES = {
    "private": PolicyType.NONE,
    "public-read": PolicyType.READ_ONLY,
    "public-read-write": PolicyType.READ_WRITE,
}

CANNED_ACLS = frozenset(_CANNED_POLICIES) | {"authenticated-read"}


def policy_for_canned_acl(acl_name: str) -> PolicyType:
    """Translate a canned ACL name into the access level it grants anonymous users.

    Supported canned ACLs:
        - private: no anonymous access
        - public-read: AllUsers get READ
        - public-read-write: AllUsers get READ + WRITE

    Args:
        acl_name: The canned ACL name string.

    Returns:
        The equivalent :class:`PolicyType`.

    Raises:
        PolicyInconsistencyError: For ``authenticated-read``, which grants
            access to signed-in users only and has no anonymous policy
            equivalent.
        ConstructionError: If the canned ACL name is not recognized.
    """
    if acl_name == "authenticated-read":
        raise PolicyInconsistencyError(
            "authenticated-read has no equivalent anonymous bucket policy"
        )
    try:
        return _CANNED_POLICIES[acl_name]
    except KeyError:
        raise ConstructionError(ACL_HEADER, acl_name, "is not a canned ACL") from None


def canned_acl_for_policy(policy: PolicyType) -> str | None:
    """The canned ACL matching ``policy``, or None (write-only has none)."""
    for name, candidate in _CANNED_POLICIES.items():
        if candidate == policy:
            return name
    return None


def apply_canned_acl(
    document: BucketPolicyDocument, bucket: str, acl_name: str, prefix: str = ""
) -> BucketPolicyDocument:
    """Return ``document`` rewritten to grant what ``acl_name`` grants on ``bucket``/``prefix``."""
    return set_policy(document, bucket, prefix, policy_for_canned_acl(acl_name))
