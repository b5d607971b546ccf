from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from clinic.exceptions import NotFoundError, ValidationError
from clinic.models import Appointment, ContactMessage, Doctor, Patient, Testimonial
from clinic.services.audit import log_action

User = get_user_model()


def user_to_dict(u) -> dict:
    return {
        'id': u.id,
        'username': u.username,
        'email': u.email,
        'name': u.get_full_name() or u.username,
        'firstName': u.first_name,
        'lastName': u.last_name,
        'phone': u.phone,
        'role': u.role,
        'isApproved': u.is_approved,
        'isAdmin': u.is_admin,
        'lastLogin': u.last_login.isoformat() if u.last_login else None,
        'dateJoined': u.date_joined.isoformat() if u.date_joined else None,
    }


@transaction.atomic
def register_user(*, username: str, email: str, password: str, name: str = '', phone: str = '') -> User:
    """Create a customer account that stays locked until an administrator approves it."""
    first, _, last = (name or '').strip().partition(' ')
    user = User.objects.create_user(
        username=username, email=email, password=password,
        first_name=first[:150], last_name=last[:150],
    )
    user.role = User.ROLE_CUSTOMER
    user.is_approved = False
    user.phone = phone or ''
    user.save(update_fields=['role', 'is_approved', 'phone'])
    log_action(user=user, action='register', object_type='user', object_id=user.id)
    return user


def list_users(*, approved: Optional[bool]=None, role: Optional[str]=None, q: Optional[str]=None):
    qs = User.objects.all()
    if approved is not None:
        qs = qs.filter(is_approved=approved)
    if role:
        qs = qs.filter(role=role)
    if q:
        qs = qs.filter(Q(username__icontains=q) | Q(email__icontains=q)
                       | Q(first_name__icontains=q) | Q(last_name__icontains=q))
    return qs.order_by('-date_joined', '-id')


def get_user(user_id: int) -> User:
    u = User.objects.filter(id=user_id).first()
    if not u:
        raise NotFoundError('User not found.')
    return u


def set_approval(user_id: int, approved: bool, *, actor=None) -> User:
    u = get_user(user_id)
    u.is_approved = approved
    u.save(update_fields=['is_approved', 'updated_at'])
    log_action(user=actor, action='user_approve' if approved else 'user_unapprove',
               object_type='user', object_id=u.id)
    return u


def set_role(user_id: int, role: str, *, actor=None) -> User:
    u = get_user(user_id)
    if actor is not None and u.id == actor.id and role != User.ROLE_ADMIN:
        raise ValidationError({'role': ['You cannot remove your own administrator role.']})
    previous = u.role
    u.role = role
    if role == User.ROLE_ADMIN:
        u.is_approved = True
    u.save(update_fields=['role', 'is_approved', 'updated_at'])
    log_action(user=actor, action='user_role', object_type='user', object_id=u.id,
               detail={'from': previous, 'to': role})
    return u


def delete_user(user_id: int, *, actor=None) -> None:
    u = get_user(user_id)
    if actor is not None and u.id == actor.id:
        raise ValidationError('You cannot delete your own account.')
    u.delete()
    log_action(user=actor, action='user_delete', object_type='user', object_id=user_id)


def dashboard_counts() -> dict:
    now = timezone.now()
    today = timezone.localdate()
    active = Appointment.objects.filter(status__in=Appointment.ACTIVE_STATUSES)
    return {
        'pendingUsers': User.objects.filter(is_approved=False).exclude(role=User.ROLE_ADMIN).count(),
        'appointmentsToday': active.filter(start__date=today).count(),
        'upcomingAppointments': active.filter(start__gte=now).count(),
        'pendingAppointments': Appointment.objects.filter(status=Appointment.STATUS_PENDING, start__gte=now).count(),
        'activeDoctors': Doctor.objects.filter(active=True).count(),
        'activePatients': Patient.objects.filter(active=True).count(),
        'unreadMessages': ContactMessage.objects.filter(processed=False).count(),
        'pendingTestimonials': Testimonial.objects.filter(approved=False).count(),
    }
