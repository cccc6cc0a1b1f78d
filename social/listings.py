"""
Jobs and products: form cleaning, publishing rules, filters, saved lists.

Both kinds of listing are published under an organization where the
author is owner or co-owner and can later be edited or deleted by the
author only.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import Q

from . import orgs
from .exceptions import NotAllowed, ValidationFailed
from .models import Job, Organization, Product, SavedJob, SavedProduct

logger = logging.getLogger(__name__)

ALL = "All"

JOB_FIELDS = (
    'title', 'company_name', 'location', 'employment_type', 'remote_type',
    'short_description', 'description', 'keywords', 'salary_display', 'apply_url',
)
PRODUCT_FIELDS = (
    'name', 'company_name', 'category', 'short_description', 'specifications',
    'product_url', 'keywords',
)
PRODUCT_IMAGES = ('image1', 'image2', 'image3')
MAX_PRICE = Decimal('1e10')


def _strip(data, fields):
    return {field: (data.get(field) or '').strip() for field in fields}


def _resolve_org(author, org_id, message):
    """Organization the listing is published under; author must be able to publish."""
    org = Organization.objects.filter(pk=org_id, is_active=True).first() if org_id else None
    if org is None or not orgs.can_post_listings(author, org):
        raise NotAllowed(message)
    return org


# ============================================================================
# JOBS
# ============================================================================

def clean_job(data):
    payload = _strip(data, JOB_FIELDS)
    if not payload['title'] or not payload['company_name']:
        raise ValidationFailed("Title and company name are required.")
    return payload


def create_job(author, data):
    org = _resolve_org(author, data.get('org_id'), "Only the organization owner/co-owner can post this job.")
    payload = clean_job(data)
    job = Job.objects.create(owner=author, org=org, **payload)
    logger.info("User %s posted job %s under %s", author.pk, job.pk, org.slug)
    return job


def update_job(actor, job, data):
    if job.owner_id != actor.pk:
        raise NotAllowed("You can only edit your own jobs.")
    for field, value in clean_job(data).items():
        setattr(job, field, value)
    if 'is_active' in data:
        job.is_active = data.get('is_active') in ('1', 'true', 'on', True)
    job.save()
    return job


def delete_job(actor, job):
    if job.owner_id != actor.pk:
        raise NotAllowed("You can only delete your own jobs.")
    job.delete()


def search_jobs(query='', employment_type=ALL, remote_type=ALL, org=None):
    qs = Job.objects.filter(is_active=True).select_related('org')
    if employment_type and employment_type != ALL:
        qs = qs.filter(employment_type=employment_type)
    if remote_type and remote_type != ALL:
        qs = qs.filter(remote_type=remote_type)
    if org is not None:
        qs = qs.filter(org=org)

    query = (query or '').strip()
    if query:
        qs = qs.filter(
            Q(title__icontains=query)
            | Q(company_name__icontains=query)
            | Q(location__icontains=query)
            | Q(keywords__icontains=query)
            | Q(short_description__icontains=query)
        )
    return qs.order_by('-created_at')


def toggle_saved_job(user, job):
    """Returns ``True`` when the job is saved afterwards."""
    with transaction.atomic():
        saved, created = SavedJob.objects.get_or_create(user=user, job=job)
        if not created:
            saved.delete()
    return created


def saved_job_ids(user):
    if user is None or not user.is_authenticated:
        return set()
    return set(SavedJob.objects.filter(user=user).values_list('job_id', flat=True))


def saved_jobs(user):
    return Job.objects.filter(saves__user=user).select_related('org').order_by('-saves__created_at')


# ============================================================================
# PRODUCTS
# ============================================================================

def clean_product(data):
    payload = _strip(data, PRODUCT_FIELDS)
    if not payload['name']:
        raise ValidationFailed("Product name is required.")

    price_type = Product.PRICE_FIXED if data.get('price_type') == Product.PRICE_FIXED else Product.PRICE_CONTACT
    price_value = None
    raw_price = (data.get('price_value') or '').strip()
    if price_type == Product.PRICE_FIXED and raw_price:
        try:
            price_value = Decimal(raw_price)
        except InvalidOperation:
            raise ValidationFailed("Price must be a number.")
        if not price_value.is_finite():
            raise ValidationFailed("Price must be a number.")
        if price_value < 0:
            raise ValidationFailed("Price cannot be negative.")
        # Product.price_value holds 12 digits, 2 of them decimals
        if price_value >= MAX_PRICE:
            raise ValidationFailed("Price is too large.")
        price_value = price_value.quantize(Decimal('0.01'))

    in_stock = data.get('in_stock', 'yes') in ('yes', '1', 'true', 'on')
    stock_quantity = None
    raw_qty = (data.get('stock_quantity') or '').strip()
    if in_stock and raw_qty.isdigit():
        stock_quantity = int(raw_qty)

    payload.update(
        price_type=price_type,
        price_value=price_value,
        in_stock=in_stock,
        stock_quantity=stock_quantity,
    )
    return payload


def _attach_files(product, files):
    changed = False
    for field in PRODUCT_IMAGES + ('datasheet',):
        upload = files.get(field) if files else None
        if upload:
            setattr(product, field, upload)
            changed = True
    return changed


def create_product(author, data, files=None):
    org = _resolve_org(author, data.get('org_id'), "Only the organization owner/co-owner can list this product.")
    payload = clean_product(data)
    product = Product(owner=author, org=org, **payload)
    _attach_files(product, files)
    product.save()
    logger.info("User %s listed product %s under %s", author.pk, product.pk, org.slug)
    return product


def update_product(actor, product, data, files=None):
    if product.owner_id != actor.pk:
        raise NotAllowed("You can only edit your own products.")
    for field, value in clean_product(data).items():
        setattr(product, field, value)
    _attach_files(product, files)
    product.save()
    return product


def delete_product(actor, product):
    if product.owner_id != actor.pk:
        raise NotAllowed("You can only delete your own products.")
    product.delete()


def search_products(query='', category=ALL, org=None):
    qs = Product.objects.select_related('org')
    if category and category != ALL:
        qs = qs.filter(category=category)
    if org is not None:
        qs = qs.filter(org=org)

    query = (query or '').strip()
    if query:
        qs = qs.filter(
            Q(name__icontains=query)
            | Q(company_name__icontains=query)
            | Q(short_description__icontains=query)
            | Q(keywords__icontains=query)
            | Q(category__icontains=query)
        )
    return qs.order_by('-created_at')


def toggle_saved_product(user, product):
    with transaction.atomic():
        saved, created = SavedProduct.objects.get_or_create(user=user, product=product)
        if not created:
            saved.delete()
    return created


def saved_product_ids(user):
    if user is None or not user.is_authenticated:
        return set()
    return set(SavedProduct.objects.filter(user=user).values_list('product_id', flat=True))


def saved_products(user):
    return Product.objects.filter(saves__user=user).select_related('org').order_by('-saves__created_at')
