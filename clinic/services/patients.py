from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q

from clinic.exceptions import NotFoundError, ValidationError
from clinic.models import InsuranceCompany, Patient
from clinic.services.audit import log_action

User = get_user_model()

PATIENT_FIELDS = (
    'first_name', 'last_name', 'email', 'phone', 'date_of_birth', 'gender', 'address', 'city',
    'postal_code', 'identification_number', 'insurance_number', 'emergency_contact_name',
    'emergency_contact_phone', 'allergies', 'notes', 'active',
)


def patient_to_dict(p: Patient) -> dict:
    return {
        'id': p.id,
        'userId': p.user_id,
        'firstName': p.first_name,
        'lastName': p.last_name,
        'fullName': p.full_name,
        'email': p.email,
        'phone': p.phone,
        'dateOfBirth': p.date_of_birth.isoformat() if p.date_of_birth else None,
        'gender': p.gender,
        'address': p.address,
        'city': p.city,
        'postalCode': p.postal_code,
        'identificationNumber': p.identification_number,
        'insuranceNumber': p.insurance_number,
        'insuranceCompanyId': p.insurance_company_id,
        'emergencyContactName': p.emergency_contact_name,
        'emergencyContactPhone': p.emergency_contact_phone,
        'allergies': p.allergies,
        'notes': p.notes,
        'active': p.active,
        'createdAt': p.created_at.isoformat() if p.created_at else None,
        'updatedAt': p.updated_at.isoformat() if p.updated_at else None,
    }


def list_patients(*, q: Optional[str]=None, include_inactive: bool=False):
    qs = Patient.objects.all()
    if not include_inactive:
        qs = qs.filter(active=True)
    if q:
        qs = qs.filter(
            Q(first_name__icontains=q) | Q(last_name__icontains=q) | Q(email__icontains=q)
            | Q(phone__icontains=q) | Q(identification_number__icontains=q)
        )
    return qs.order_by('last_name', 'first_name', 'id')


def get_patient(patient_id: int) -> Patient:
    p = Patient.objects.filter(id=patient_id).first()
    if not p:
        raise NotFoundError('Patient not found.')
    return p


@transaction.atomic
def save_patient(data: Dict[str, Any], *, patient: Optional[Patient]=None, actor=None) -> Patient:
    p = patient or Patient()
    for key in PATIENT_FIELDS:
        if key in data:
            setattr(p, key, data[key])
    if 'user_id' in data:
        if data['user_id'] and not User.objects.filter(id=data['user_id']).exists():
            raise ValidationError({'userId': ['User not found.']})
        p.user_id = data['user_id']
    if 'insurance_company_id' in data:
        company_id = data['insurance_company_id']
        if company_id and not InsuranceCompany.objects.filter(id=company_id).exists():
            raise ValidationError({'insuranceCompanyId': ['Insurance company not found.']})
        p.insurance_company_id = company_id
    created = p.pk is None
    p.save()
    log_action(user=actor, action='patient_create' if created else 'patient_update',
               object_type='patient', object_id=p.id, detail={'fields': sorted(data.keys())})
    return p


def deactivate_patient(patient_id: int, *, actor=None) -> Patient:
    """Patients are never deleted; appointments keep pointing at them."""
    p = get_patient(patient_id)
    if p.active:
        p.active = False
        p.save(update_fields=['active', 'updated_at'])
        log_action(user=actor, action='patient_deactivate', object_type='patient', object_id=p.id)
    return p


def link_patient_to_user(patient_id: int, user_id: Optional[int], *, actor=None) -> Patient:
    """Attach the record to a site account, or detach it when ``user_id`` is None."""
    p = get_patient(patient_id)
    if user_id is not None and not User.objects.filter(id=user_id).exists():
        raise NotFoundError('User not found.')
    p.user_id = user_id
    p.save(update_fields=['user', 'updated_at'])
    log_action(user=actor, action='patient_link_user', object_type='patient', object_id=p.id,
               detail={'user_id': user_id})
    return p
