"""
Public site content: products, blog posts, testimonials, contact
messages and the legal pages.
"""
from typing import Any, Dict, Optional

from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.text import slugify

from clinic import legal_defaults
from clinic.exceptions import ConflictError, NotFoundError
from clinic.models import BlogPost, ContactMessage, LegalSettings, Product, Testimonial
from clinic.services.audit import log_action

LEGAL_CACHE_KEY = 'settings:legal'
LEGAL_CACHE_TTL = 300


def _get(model, pk: int, label: str):
    obj = model.objects.filter(pk=pk).first()
    if obj is None:
        raise NotFoundError(f'{label} not found.')
    return obj


def _assign(obj, data: Dict[str, Any], fields) -> None:
    for key in fields:
        if key in data:
            setattr(obj, key, data[key])


# ---------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------
PRODUCT_FIELDS = ('name', 'category', 'description', 'price', 'image_url', 'discount', 'in_stock', 'featured')


def product_to_dict(p: Product) -> dict:
    return {
        'id': p.id,
        'name': p.name,
        'category': p.category,
        'description': p.description,
        'price': str(p.price),
        'imageUrl': p.image_url,
        'discount': p.discount,
        'inStock': p.in_stock,
        'featured': p.featured,
        'dateAdded': p.date_added.isoformat() if p.date_added else None,
    }


def list_products(*, category: Optional[str]=None, featured: Optional[bool]=None, q: Optional[str]=None):
    qs = Product.objects.all()
    if category:
        qs = qs.filter(category__iexact=category)
    if featured is not None:
        qs = qs.filter(featured=featured)
    if q:
        qs = qs.filter(Q(name__icontains=q) | Q(description__icontains=q) | Q(category__icontains=q))
    return qs.order_by('-featured', 'name', 'id')


def get_product(product_id: int) -> Product:
    return _get(Product, product_id, 'Product')


def save_product(data: Dict[str, Any], *, product: Optional[Product]=None, actor=None) -> Product:
    p = product or Product()
    _assign(p, data, PRODUCT_FIELDS)
    p.save()
    log_action(user=actor, action='product_save', object_type='product', object_id=p.id,
               detail={'fields': sorted(data.keys())})
    return p


def delete_product(product_id: int, *, actor=None) -> None:
    get_product(product_id).delete()
    log_action(user=actor, action='product_delete', object_type='product', object_id=product_id)


# ---------------------------------------------------------------------
# Blog
# ---------------------------------------------------------------------
BLOG_FIELDS = ('title', 'category', 'content', 'excerpt', 'image_url', 'published', 'publish_date')


def blog_post_to_dict(b: BlogPost, *, full: bool=True) -> dict:
    data = {
        'id': b.id,
        'title': b.title,
        'slug': b.slug,
        'category': b.category,
        'excerpt': b.excerpt,
        'imageUrl': b.image_url,
        'published': b.published,
        'publishDate': b.publish_date.isoformat() if b.publish_date else None,
    }
    if full:
        data['content'] = b.content
    return data


def list_blog_posts(*, include_unpublished: bool=False, category: Optional[str]=None):
    qs = BlogPost.objects.all()
    if not include_unpublished:
        qs = qs.filter(published=True, publish_date__lte=timezone.now())
    if category:
        qs = qs.filter(category__iexact=category)
    return qs.order_by('-publish_date', '-id')


def get_blog_post_by_slug(slug: str, *, include_unpublished: bool=False) -> BlogPost:
    qs = BlogPost.objects.filter(slug=slug)
    if not include_unpublished:
        qs = qs.filter(published=True, publish_date__lte=timezone.now())
    post = qs.first()
    if post is None:
        raise NotFoundError('Blog post not found.')
    return post


def get_blog_post(post_id: int) -> BlogPost:
    return _get(BlogPost, post_id, 'Blog post')


def save_blog_post(data: Dict[str, Any], *, post: Optional[BlogPost]=None, actor=None) -> BlogPost:
    b = post or BlogPost()
    _assign(b, data, BLOG_FIELDS)
    if data.get('slug'):
        b.slug = data['slug']
    elif not b.slug:
        b.slug = slugify(b.title)[:255] or f'post-{int(timezone.now().timestamp())}'
    if b.publish_date is None:
        b.publish_date = timezone.now()
    try:
        with transaction.atomic():
            b.save()
    except IntegrityError:
        raise ConflictError('A blog post with this slug already exists.')
    log_action(user=actor, action='blog_save', object_type='blog_post', object_id=b.id,
               detail={'slug': b.slug})
    return b


def delete_blog_post(post_id: int, *, actor=None) -> None:
    get_blog_post(post_id).delete()
    log_action(user=actor, action='blog_delete', object_type='blog_post', object_id=post_id)


# ---------------------------------------------------------------------
# Testimonials
# ---------------------------------------------------------------------
def testimonial_to_dict(t: Testimonial) -> dict:
    return {
        'id': t.id,
        'name': t.name,
        'role': t.role,
        'content': t.content,
        'rating': t.rating,
        'date': t.date.isoformat() if t.date else None,
        'approved': t.approved,
    }


def submit_testimonial(data: Dict[str, Any]) -> Testimonial:
    """Public submissions wait for an administrator's approval."""
    return Testimonial.objects.create(approved=False, **data)


def set_testimonial_approved(testimonial_id: int, approved: bool, *, actor=None) -> Testimonial:
    t = _get(Testimonial, testimonial_id, 'Testimonial')
    t.approved = approved
    t.save(update_fields=['approved'])
    log_action(user=actor, action='testimonial_approve' if approved else 'testimonial_unapprove',
               object_type='testimonial', object_id=t.id)
    return t


def delete_testimonial(testimonial_id: int, *, actor=None) -> None:
    _get(Testimonial, testimonial_id, 'Testimonial').delete()
    log_action(user=actor, action='testimonial_delete', object_type='testimonial', object_id=testimonial_id)


# ---------------------------------------------------------------------
# Contact messages
# ---------------------------------------------------------------------
def contact_to_dict(m: ContactMessage) -> dict:
    return {
        'id': m.id,
        'name': m.name,
        'email': m.email,
        'phone': m.phone,
        'subject': m.subject,
        'message': m.message,
        'date': m.date.isoformat() if m.date else None,
        'processed': m.processed,
        'notes': m.notes,
        'reply': m.reply,
        'repliedAt': m.replied_at.isoformat() if m.replied_at else None,
    }


def submit_contact_message(data: Dict[str, Any]) -> ContactMessage:
    return ContactMessage.objects.create(**data)


def mark_contact_read(message_id: int, *, processed: bool=True, notes: Optional[str]=None, actor=None) -> ContactMessage:
    m = _get(ContactMessage, message_id, 'Contact message')
    m.processed = processed
    if notes is not None:
        m.notes = notes
    m.save(update_fields=['processed', 'notes'])
    log_action(user=actor, action='contact_read', object_type='contact_message', object_id=m.id,
               detail={'processed': processed})
    return m


def reply_contact_message(message_id: int, reply: str, *, actor=None) -> ContactMessage:
    m = _get(ContactMessage, message_id, 'Contact message')
    m.reply = reply
    m.replied_at = timezone.now()
    m.processed = True
    m.save(update_fields=['reply', 'replied_at', 'processed'])
    log_action(user=actor, action='contact_reply', object_type='contact_message', object_id=m.id)
    return m


def delete_contact_message(message_id: int, *, actor=None) -> None:
    _get(ContactMessage, message_id, 'Contact message').delete()
    log_action(user=actor, action='contact_delete', object_type='contact_message', object_id=message_id)


# ---------------------------------------------------------------------
# Legal settings
# ---------------------------------------------------------------------
def legal_to_dict(s: LegalSettings) -> dict:
    return {
        'privacyPolicy': s.privacy_policy,
        'cookiesPolicy': s.cookies_policy,
        'termsAndConditions': s.terms_and_conditions,
        'updatedAt': s.updated_at.isoformat() if s.updated_at else None,
    }


def get_legal_settings() -> LegalSettings:
    settings_row = LegalSettings.objects.order_by('id').first()
    if settings_row is None:
        settings_row = LegalSettings.objects.create(
            privacy_policy=legal_defaults.PRIVACY_POLICY,
            cookies_policy=legal_defaults.COOKIES_POLICY,
            terms_and_conditions=legal_defaults.TERMS_AND_CONDITIONS,
        )
    return settings_row


def get_legal_payload() -> dict:
    payload = cache.get(LEGAL_CACHE_KEY)
    if payload is None:
        payload = legal_to_dict(get_legal_settings())
        cache.set(LEGAL_CACHE_KEY, payload, LEGAL_CACHE_TTL)
    return payload


def update_legal_settings(data: Dict[str, Any], *, actor=None) -> LegalSettings:
    s = get_legal_settings()
    _assign(s, data, ('privacy_policy', 'cookies_policy', 'terms_and_conditions'))
    s.save()
    cache.delete(LEGAL_CACHE_KEY)
    log_action(user=actor, action='legal_update', object_type='legal_settings', object_id=s.id,
               detail={'fields': sorted(data.keys())})
    return s
