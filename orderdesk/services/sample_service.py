import logging
from collections import Counter

from flask import current_app

from orderdesk.errors import BusinessRuleError, NotFoundError
from orderdesk.extensions import db
from orderdesk.models.product import Product
from orderdesk.models.sample import SampleRequest, SampleStatus
from orderdesk.schemas import SampleRequestInput, parse
from orderdesk.services import outbox
from orderdesk.services.outbox import OutboxService
from orderdesk.services.sequence_allocator import SequenceAllocator
from orderdesk.utils import utcnow

logger = logging.getLogger(__name__)


class SampleService:

    @staticmethod
    def create(contact, items, address=None, notes=None, user=None):
        """
        Record a free sample request.

        ``contact`` holds name, email and optionally phone and company_name.
        Limits per product and per request come from SAMPLE_MAX_PER_PRODUCT
        and SAMPLE_MAX_TOTAL.
        """
        data = parse(SampleRequestInput, dict(contact, items=items, address=address, notes=notes),
                     'Invalid sample request')

        per_product = Counter()
        for item in data.items:
            per_product[item.product_id] += item.quantity

        cfg = current_app.config
        for product_id, quantity in per_product.items():
            if quantity > cfg['SAMPLE_MAX_PER_PRODUCT']:
                raise BusinessRuleError(
                    f"At most {cfg['SAMPLE_MAX_PER_PRODUCT']} samples per product",
                    code='SAMPLE_LIMIT',
                )
        total = sum(per_product.values())
        if total > cfg['SAMPLE_MAX_TOTAL']:
            raise BusinessRuleError(f"At most {cfg['SAMPLE_MAX_TOTAL']} samples per request", code='SAMPLE_LIMIT')

        try:
            found = Product.query.filter(Product.id.in_(list(per_product)), Product.is_active.is_(True)).count()
            if found != len(per_product):
                raise NotFoundError('One or more products not found', code='PRODUCT_NOT_FOUND')

            sample = SampleRequest(
                request_number=SequenceAllocator.next_sample_number(),
                user_id=user.id if user is not None else None,
                name=data.name,
                email=data.email,
                phone=data.phone,
                company_name=data.company_name,
                address=data.address,
                items=[{'productId': pid, 'quantity': qty} for pid, qty in per_product.items()],
                notes=data.notes,
            )
            db.session.add(sample)
            db.session.flush()

            event = OutboxService.enqueue(outbox.SAMPLE_REQUESTED, {
                'sampleId': sample.id,
                'requestNumber': sample.request_number,
                'name': data.name,
                'totalSamples': total,
            })
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info('Sample request %s for %s samples', sample.request_number, total)
        OutboxService.dispatch_after_commit(event)
        return sample

    @staticmethod
    def mark_dispatched(request_id):
        sample = db.session.get(SampleRequest, request_id)
        if sample is None:
            raise NotFoundError('Sample request not found', code='SAMPLE_NOT_FOUND')
        if sample.status == SampleStatus.DISPATCHED:
            raise BusinessRuleError('Sample request already dispatched', code='ALREADY_DISPATCHED')

        sample.status = SampleStatus.DISPATCHED
        sample.dispatched_at = utcnow()
        db.session.commit()
        logger.info('Sample request %s dispatched', sample.request_number)
        return sample
