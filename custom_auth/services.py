"""
Profile, address book and admin user management.

A user's addresses always have exactly one default once any exist: the first
address becomes the default, and deleting the default promotes the oldest
remaining one.
"""
import logging

from django.db import transaction
from django.db.models import Count, Q
from django.db.models.functions import TruncDate

from subscriptions.models import UserSubscription
from utils.exceptions import DomainError, ForbiddenError, NotFoundError
from .models import Address, CustomUser, UserProfile

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- addresses

def get_address(user, address_id):
    address = user.addresses.filter(pk=address_id).first()
    if address is None:
        raise NotFoundError('Address not found')
    return address


def add_address(user, data):
    with transaction.atomic():
        addresses = Address.objects.select_for_update().filter(user=user)
        make_default = data.pop('is_default', False) or not addresses.exists()
        if make_default:
            addresses.filter(is_default=True).update(is_default=False)
        address = Address.objects.create(user=user, is_default=make_default, **data)
    logger.info(f"User {user.id} added address {address.id}")
    return address


def update_address(user, address_id, data):
    with transaction.atomic():
        address = get_address(user, address_id)
        is_default = data.pop('is_default', None)
        if is_default is False and address.is_default:
            raise DomainError('Choose another default address instead of unsetting this one')
        if is_default and not address.is_default:
            user.addresses.filter(is_default=True).update(is_default=False)
            address.is_default = True
        for field, value in data.items():
            setattr(address, field, value)
        address.save()
    return address


def delete_address(user, address_id):
    with transaction.atomic():
        address = get_address(user, address_id)
        was_default = address.is_default
        address.delete()
        if was_default:
            successor = user.addresses.order_by('created_at', 'id').first()
            if successor is not None:
                successor.is_default = True
                successor.save(update_fields=['is_default', 'updated_at'])


def update_preferences(user, data):
    profile = UserProfile.for_user(user)
    for field, value in data.items():
        setattr(profile, field, value)
    profile.save()
    return profile


# --------------------------------------------------------------------------- admin

def get_user(user_id):
    user = CustomUser.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFoundError('User not found')
    return user


def ban_user(user_id, admin, reason):
    user = get_user(user_id)
    if user.is_admin_role:
        raise ForbiddenError('Cannot ban admin users')
    if user.is_banned:
        raise DomainError('User is already banned')
    user.ban(admin, reason)
    logger.info(f"User {user.id} banned by admin {admin.id}: {reason}")
    return user


def unban_user(user_id, admin):
    user = get_user(user_id)
    if not user.is_banned:
        raise DomainError('User is not banned')
    user.unban()
    logger.info(f"User {user.id} unbanned by admin {admin.id}")
    return user


def toggle_user_status(user_id):
    user = get_user(user_id)
    if user.is_admin_role:
        raise ForbiddenError('Cannot modify admin user status')
    if user.is_banned:
        raise DomainError('Unban the user before changing their status')
    user.toggle_active()
    return user


def user_overview():
    paid = [UserSubscription.Status.ACTIVE, UserSubscription.Status.EXPIRED]
    counts = CustomUser.objects.aggregate(
        total_users=Count('id'),
        total_active_users=Count('id', filter=Q(is_active=True)),
        total_banned_users=Count('id', filter=Q(is_banned=True)),
        total_vendors=Count('id', filter=Q(role=CustomUser.Role.VENDOR)),
        total_admins=Count('id', filter=Q(role=CustomUser.Role.ADMIN)),
    )
    counts['total_premium_users'] = (
        CustomUser.objects.filter(subscriptions__status__in=paid).distinct().count()
    )
    return counts


def user_activity_stats(start, end):
    joined = CustomUser.objects.filter(date_joined__gte=start, date_joined__lte=end)
    daily = list(
        joined.annotate(day=TruncDate('date_joined'))
        .values('day')
        .annotate(
            new_users=Count('id'),
            new_vendors=Count('id', filter=Q(role=CustomUser.Role.VENDOR)),
            active_users=Count('id', filter=Q(is_active=True)),
        )
        .order_by('day')
    )
    roles = {row['role']: row['count'] for row in joined.values('role').annotate(count=Count('id'))}
    return {'daily': daily, 'role_distribution': roles}
