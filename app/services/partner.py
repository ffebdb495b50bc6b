"""
Partner linking.

Manages the pairwise relationship between two accounts: unlinked, an
outgoing or incoming request, or linked. Every transition touches exactly
two rows (the caller and the counterpart) and runs as one transaction:
rows are locked in ascending id order, preconditions are checked on the
locked rows, and either both rows are written and committed or the
transaction is rolled back untouched.

Precondition violations are not raised. Each operation returns either a
``PartnerSuccess`` carrying the caller's new status or a ``PartnerFailure``
naming the rule that failed.
"""

import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple, Union

from sqlmodel import Session

from app.models.account import Account
from app.repositories.accounts import AccountDirectory
from app.schemas.partner import PartnerInfo, PartnerStatus

logger = logging.getLogger(__name__)


class PartnerState(str, Enum):
    UNLINKED = "UNLINKED"
    REQUEST_SENT = "REQUEST_SENT"
    REQUEST_RECEIVED = "REQUEST_RECEIVED"
    LINKED = "LINKED"


class PartnerError(str, Enum):
    ALREADY_LINKED = "ALREADY_LINKED"
    REQUEST_ALREADY_PENDING = "REQUEST_ALREADY_PENDING"
    INVALID_TARGET = "INVALID_TARGET"
    TARGET_NOT_FOUND = "TARGET_NOT_FOUND"
    TARGET_ALREADY_LINKED = "TARGET_ALREADY_LINKED"
    TARGET_REQUEST_PENDING = "TARGET_REQUEST_PENDING"
    NO_PENDING_REQUEST = "NO_PENDING_REQUEST"
    NOT_LINKED = "NOT_LINKED"


@dataclass(frozen=True)
class PartnerSuccess:
    message: str
    status: PartnerStatus


@dataclass(frozen=True)
class PartnerFailure:
    error: PartnerError
    message: str


PartnerResult = Union[PartnerSuccess, PartnerFailure]


def state_of(account: Account) -> PartnerState:
    if account.partner_id is not None:
        return PartnerState.LINKED
    if account.partner_request_sent_to is not None:
        return PartnerState.REQUEST_SENT
    if account.partner_request_received_from is not None:
        return PartnerState.REQUEST_RECEIVED
    return PartnerState.UNLINKED


def _partner_info(account: Optional[Account]) -> Optional[PartnerInfo]:
    if account is None:
        return None
    return PartnerInfo(
        id=account.id,
        name=account.full_name,
        email=account.email,
        created_at=account.created_at,
    )


def build_status(directory: AccountDirectory, account: Account) -> PartnerStatus:
    """Project an account's partner fields into a PartnerStatus."""

    def lookup(account_id: Optional[int]) -> Optional[PartnerInfo]:
        if account_id is None:
            return None
        return _partner_info(directory.get(account_id))

    return PartnerStatus(
        state=state_of(account).value,
        current_partner=lookup(account.partner_id),
        outgoing_request=lookup(account.partner_request_sent_to),
        incoming_request=lookup(account.partner_request_received_from),
        has_partner=account.has_partner,
        has_pending_request=account.has_pending_request,
    )


def _atomic(operation: Callable[..., PartnerResult]) -> Callable[..., PartnerResult]:
    """
    Run a transition as one transaction.

    Commits on success, rolls back on failure or on any storage error.
    """

    @functools.wraps(operation)
    def wrapper(session: Session, account: Account, *args, **kwargs) -> PartnerResult:
        account_id = account.id
        try:
            result = operation(session, account, *args, **kwargs)
        except Exception:
            session.rollback()
            raise
        if isinstance(result, PartnerFailure):
            session.rollback()
            logger.warning(
                "%s rejected for account %s: %s",
                operation.__name__, account_id, result.error.value,
            )
        else:
            session.commit()
        return result

    return wrapper


def _lock_with_counterpart(
    directory: AccountDirectory, account: Account, field: str
) -> Tuple[Account, Optional[Account]]:
    """
    Lock the caller and the account referenced by ``field``.

    The reference is read before locking; if the locked row disagrees, the
    new counterpart is locked too. The caller's row is locked after the
    first pass, so this settles in at most two.
    """
    counterpart_id = getattr(account, field)
    while True:
        rows = directory.lock(account.id, counterpart_id)
        me = rows[account.id]
        current = getattr(me, field)
        if current == counterpart_id:
            counterpart = rows.get(counterpart_id) if counterpart_id is not None else None
            if counterpart_id is not None and counterpart is None:
                logger.warning(
                    "Account %s references missing account %s via %s",
                    me.id, counterpart_id, field,
                )
            return me, counterpart
        counterpart_id = current


def _link(directory: AccountDirectory, first: Account, second: Account) -> None:
    first.partner_id = second.id
    first.partner_request_sent_to = None
    first.partner_request_received_from = None
    second.partner_id = first.id
    second.partner_request_sent_to = None
    second.partner_request_received_from = None
    first.touch()
    second.touch()
    directory.save(first, second)


def _same_email(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


def _check_sender(
    directory: AccountDirectory, me: Account, partner_email: str
) -> Optional[PartnerFailure]:
    if me.has_partner:
        return PartnerFailure(
            PartnerError.ALREADY_LINKED,
            "You already have a partner. Please unlink before sending a new request.",
        )
    # An incoming request from the target itself is resolved by the mutual
    # request branch, so it does not block sending.
    if me.partner_request_sent_to is not None or (
        me.partner_request_received_from is not None
        and not _is_incoming_from(directory, me, partner_email)
    ):
        return PartnerFailure(
            PartnerError.REQUEST_ALREADY_PENDING,
            "You already have a pending partner request. Please resolve it first.",
        )
    if _same_email(me.email, partner_email):
        return PartnerFailure(
            PartnerError.INVALID_TARGET,
            "You cannot send a partner request to yourself",
        )
    return None


def _is_incoming_from(directory: AccountDirectory, me: Account, email: str) -> bool:
    sender = directory.get(me.partner_request_received_from)
    return sender is not None and _same_email(sender.email, email)


@_atomic
def send_request(session: Session, account: Account, partner_email: str) -> PartnerResult:
    """
    Invite the account registered under ``partner_email``.

    If that account has already invited the caller, both are linked at
    once instead of leaving two crossing requests.
    """
    directory = AccountDirectory(session)
    logger.info("Account %s sending partner request to %s", account.id, partner_email)

    # Cheap checks on the caller before the target is known
    session.refresh(account)
    failure = _check_sender(directory, account, partner_email)
    if failure:
        return failure

    target = directory.get_by_email(partner_email)
    if target is None:
        return PartnerFailure(
            PartnerError.TARGET_NOT_FOUND,
            f"User not found with email: {partner_email}",
        )
    if target.id == account.id:
        return PartnerFailure(
            PartnerError.INVALID_TARGET,
            "You cannot send a partner request to yourself",
        )

    rows = directory.lock(account.id, target.id)
    me, target = rows[account.id], rows.get(target.id)
    if target is None:
        return PartnerFailure(
            PartnerError.TARGET_NOT_FOUND,
            f"User not found with email: {partner_email}",
        )

    # State may have moved while unlocked
    failure = _check_sender(directory, me, partner_email)
    if failure:
        return failure

    if target.has_partner:
        return PartnerFailure(
            PartnerError.TARGET_ALREADY_LINKED,
            "This user already has a partner",
        )

    if target.partner_request_sent_to == me.id:
        logger.info("Mutual partner request detected, linking %s and %s", me.id, target.id)
        _link(directory, me, target)
        return PartnerSuccess(
            "Partner request accepted! You are now connected.",
            build_status(directory, me),
        )

    if target.has_pending_request:
        return PartnerFailure(
            PartnerError.TARGET_REQUEST_PENDING,
            "This user already has a pending partner request",
        )

    me.partner_request_sent_to = target.id
    target.partner_request_received_from = me.id
    me.touch()
    target.touch()
    directory.save(me, target)

    logger.info("Partner request sent from %s to %s", me.id, target.id)
    return PartnerSuccess("Partner request sent successfully", build_status(directory, me))


@_atomic
def accept_request(session: Session, account: Account) -> PartnerResult:
    directory = AccountDirectory(session)
    me, sender = _lock_with_counterpart(directory, account, "partner_request_received_from")
    if me.partner_request_received_from is None:
        return PartnerFailure(
            PartnerError.NO_PENDING_REQUEST,
            "No pending partner request to accept",
        )

    if sender is None:
        me.partner_request_received_from = None
        me.touch()
        directory.save(me)
        return PartnerSuccess(
            "Partner request is no longer available",
            build_status(directory, me),
        )

    _link(directory, me, sender)
    logger.info("Partner request accepted, %s and %s are now partners", me.id, sender.id)
    return PartnerSuccess("Partner request accepted successfully", build_status(directory, me))


@_atomic
def reject_request(session: Session, account: Account) -> PartnerResult:
    directory = AccountDirectory(session)
    me, sender = _lock_with_counterpart(directory, account, "partner_request_received_from")
    if me.partner_request_received_from is None:
        return PartnerFailure(
            PartnerError.NO_PENDING_REQUEST,
            "No pending partner request to reject",
        )

    me.partner_request_received_from = None
    me.touch()
    if sender is not None and sender.partner_request_sent_to == me.id:
        sender.partner_request_sent_to = None
        sender.touch()
        directory.save(sender)
    directory.save(me)

    logger.info("Partner request rejected by %s", me.id)
    return PartnerSuccess("Partner request rejected successfully", build_status(directory, me))


@_atomic
def cancel_request(session: Session, account: Account) -> PartnerResult:
    directory = AccountDirectory(session)
    me, receiver = _lock_with_counterpart(directory, account, "partner_request_sent_to")
    if me.partner_request_sent_to is None:
        return PartnerFailure(
            PartnerError.NO_PENDING_REQUEST,
            "No pending partner request to cancel",
        )

    me.partner_request_sent_to = None
    me.touch()
    if receiver is not None and receiver.partner_request_received_from == me.id:
        receiver.partner_request_received_from = None
        receiver.touch()
        directory.save(receiver)
    directory.save(me)

    logger.info("Partner request canceled by %s", me.id)
    return PartnerSuccess("Partner request canceled successfully", build_status(directory, me))


@_atomic
def unlink(session: Session, account: Account) -> PartnerResult:
    directory = AccountDirectory(session)
    """
    Dissolve the link on both sides.

    Data shared while linked is left alone; collaborators read "no partner"
    as "no shared view".
    """
    me, partner = _lock_with_counterpart(directory, account, "partner_id")
    if me.partner_id is None:
        return PartnerFailure(
            PartnerError.NOT_LINKED,
            "You don't have a partner to unlink",
        )

    me.partner_id = None
    me.touch()
    if partner is not None and partner.partner_id == me.id:
        partner.partner_id = None
        partner.touch()
        directory.save(partner)
    directory.save(me)

    logger.info("Account %s unlinked from %s", me.id, partner.id if partner else None)
    return PartnerSuccess("Successfully unlinked from partner", build_status(directory, me))


def get_status(session: Session, account: Account) -> PartnerStatus:
    return build_status(AccountDirectory(session), account)


def _related_ids(account: Account) -> set:
    return {
        i
        for i in (
            account.partner_id,
            account.partner_request_sent_to,
            account.partner_request_received_from,
        )
        if i is not None
    }


def release(session: Session, account: Account) -> None:
    """
    Clear every partner relation ``account`` takes part in.

    Used when an account is removed. Does not commit; the caller's
    transaction covers both the release and the removal.
    """
    directory = AccountDirectory(session)
    related = _related_ids(account)
    while True:
        rows = directory.lock(account.id, *related)
        me = rows[account.id]
        # The lock refreshes the row; a relation written meanwhile needs its
        # counterpart locked too
        if _related_ids(me) <= related:
            break
        related |= _related_ids(me)
    for other in rows.values():
        if other.id == me.id:
            continue
        changed = False
        if other.partner_id == me.id:
            other.partner_id = None
            changed = True
        if other.partner_request_sent_to == me.id:
            other.partner_request_sent_to = None
            changed = True
        if other.partner_request_received_from == me.id:
            other.partner_request_received_from = None
            changed = True
        if changed:
            other.touch()
            directory.save(other)
            logger.info("Released partner relation between %s and %s", me.id, other.id)

    me.partner_id = None
    me.partner_request_sent_to = None
    me.partner_request_received_from = None
    directory.save(me)
