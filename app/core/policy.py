# File: app/core/policy.py
# Project: itms-backend
"""
Authorization policy.

``can(principal, action, resource)`` is a pure decision over the principal's
id and role and the resource's ownership fields. It never touches the
database beyond attributes already reachable from the objects it is given.

Resources are model instances. For actions that are not about a single row
(``Action.list_all``, ``Action.create`` before the row exists) the model class
or an unsaved instance can be passed instead.
"""
import logging
from enum import Enum
from typing import Callable, Dict, Union

from app.core.errors import Forbidden
from app.models.comment import Comment
from app.models.notification import Notification
from app.models.product_info import ProductInfo
from app.models.project import Project
from app.models.ticket import Ticket
from app.models.user import User, UserRole

log = logging.getLogger(__name__)


class Action(str, Enum):
    read = "read"
    list_all = "list_all"
    create = "create"
    update = "update"
    delete = "delete"
    file_ticket = "file_ticket"
    set_status = "set_status"
    assign = "assign"
    approve_as_user_master = "approve_as_user_master"
    approve_as_super_admin = "approve_as_super_admin"
    list_members = "list_members"


# roles that may read every project, ticket, comment and product
GLOBAL_READERS = frozenset({UserRole.super_admin, UserRole.engineer})


def _is_super_admin(p: User) -> bool:
    return p.role == UserRole.super_admin


def _global_reader(p: User) -> bool:
    return p.role in GLOBAL_READERS


def _project_rule(p: User, action: Action, project) -> bool:
    if action == Action.list_all:
        return _global_reader(p)
    if action == Action.create:
        return True
    if action == Action.read:
        return project.owner_id == p.id or _global_reader(p)
    if action in (Action.update, Action.delete):
        return project.owner_id == p.id or _is_super_admin(p)
    if action == Action.file_ticket:
        # a plain user may only file tickets against projects it owns
        return project.owner_id == p.id or p.role != UserRole.user
    return False


def _ticket_rule(p: User, action: Action, ticket) -> bool:
    if action == Action.list_all:
        return _global_reader(p)
    if action == Action.read:
        return (
            ticket.creator_id == p.id
            or ticket.assigned_engineer_id == p.id
            or _global_reader(p)
        )
    if action == Action.set_status:
        return ticket.assigned_engineer_id == p.id or _is_super_admin(p)
    if action == Action.assign:
        return _is_super_admin(p)
    if action == Action.approve_as_super_admin:
        return _is_super_admin(p)
    if action == Action.approve_as_user_master:
        if p.role != UserRole.user_master:
            return False
        creator = ticket.creator
        return ticket.creator_id == p.id or (creator is not None and creator.user_master_id == p.id)
    return False


def _comment_rule(p: User, action: Action, comment) -> bool:
    if action == Action.read:
        return _ticket_rule(p, Action.read, comment.ticket)
    if action == Action.update:
        return comment.author_id == p.id
    if action == Action.delete:
        return comment.author_id == p.id or _is_super_admin(p)
    return False


def _product_rule(p: User, action: Action, product) -> bool:
    if action == Action.list_all:
        return _global_reader(p)
    if action == Action.create:
        return p.role == UserRole.user_master and product.user_master_id == p.id
    if action == Action.read:
        return product.user_master_id == p.id or _global_reader(p)
    if action in (Action.update, Action.delete):
        return product.user_master_id == p.id or _is_super_admin(p)
    return False


def _notification_rule(p: User, action: Action, notification) -> bool:
    if action in (Action.read, Action.update, Action.delete):
        return notification.user_id == p.id
    return False


def _user_rule(p: User, action: Action, target) -> bool:
    if action == Action.list_all:
        return _is_super_admin(p)
    if action == Action.read:
        return target.id == p.id or _is_super_admin(p)
    if action == Action.update:
        return _is_super_admin(p)
    if action == Action.delete:
        return _is_super_admin(p) and target.id != p.id
    if action == Action.list_members:
        return target.id == p.id or _is_super_admin(p)
    return False


_RULES: Dict[type, Callable[[User, Action, object], bool]] = {
    Project: _project_rule,
    Ticket: _ticket_rule,
    Comment: _comment_rule,
    ProductInfo: _product_rule,
    Notification: _notification_rule,
    User: _user_rule,
}


def can(principal: User, action: Action, resource: Union[object, type]) -> bool:
    kind = resource if isinstance(resource, type) else type(resource)
    rule = _RULES.get(kind)
    if rule is None:
        return False
    return rule(principal, action, resource)


def authorize(principal: User, action: Action, resource: Union[object, type], message: str | None = None) -> None:
    if not can(principal, action, resource):
        kind = resource.__name__ if isinstance(resource, type) else type(resource).__name__
        log.info("denied %s on %s for user %s (%s)", action.value, kind, principal.id, principal.role.value)
        raise Forbidden(message)
