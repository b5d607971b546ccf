from typing import Any, Dict, Optional

from django.db import IntegrityError, transaction
from django.db.models import Q

from clinic.exceptions import ConflictError, NotFoundError
from clinic.models import InsuranceCompany
from clinic.services.audit import log_action

INSURANCE_FIELDS = (
    'name', 'code', 'phone', 'email', 'website', 'address', 'city', 'postal_code',
    'coverage_types', 'notes', 'active',
)


def insurance_to_dict(c: InsuranceCompany) -> dict:
    return {
        'id': c.id,
        'name': c.name,
        'code': c.code,
        'phone': c.phone,
        'email': c.email,
        'website': c.website,
        'address': c.address,
        'city': c.city,
        'postalCode': c.postal_code,
        'coverageTypes': list(c.coverage_types or []),
        'notes': c.notes,
        'active': c.active,
        'createdAt': c.created_at.isoformat() if c.created_at else None,
    }


def list_insurance_companies(*, q: Optional[str]=None, include_inactive: bool=False):
    qs = InsuranceCompany.objects.all()
    if not include_inactive:
        qs = qs.filter(active=True)
    if q:
        qs = qs.filter(Q(name__icontains=q) | Q(code__icontains=q))
    return qs.order_by('name', 'id')


def get_insurance_company(company_id: int) -> InsuranceCompany:
    c = InsuranceCompany.objects.filter(id=company_id).first()
    if not c:
        raise NotFoundError('Insurance company not found.')
    return c


def save_insurance_company(data: Dict[str, Any], *, company: Optional[InsuranceCompany]=None,
                           actor=None) -> InsuranceCompany:
    c = company or InsuranceCompany()
    for key in INSURANCE_FIELDS:
        if key in data:
            setattr(c, key, data[key])
    try:
        with transaction.atomic():
            c.save()
    except IntegrityError:
        raise ConflictError('An insurance company with this name already exists.')
    log_action(user=actor, action='insurance_save', object_type='insurance_company', object_id=c.id,
               detail={'fields': sorted(data.keys())})
    return c


def delete_insurance_company(company_id: int, *, actor=None) -> bool:
    """Delete an insurer nobody references; otherwise archive it.  Returns True when deleted."""
    c = get_insurance_company(company_id)
    if c.patients.exists():
        c.active = False
        c.save(update_fields=['active'])
        log_action(user=actor, action='insurance_archive', object_type='insurance_company', object_id=c.id)
        return False
    c.delete()
    log_action(user=actor, action='insurance_delete', object_type='insurance_company', object_id=company_id)
    return True
