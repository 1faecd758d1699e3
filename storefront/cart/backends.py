"""
Remote cart storage.

RemoteCartBackend is the request/response contract the reconciler and the
mutator talk to. ModelCartBackend implements it on the CartItem table with
Django's async ORM, so every call is a coroutine that suspends the caller
until the database answers.
"""
import logging

from asgiref.sync import sync_to_async
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from .models import CartItem

logger = logging.getLogger(__name__)


class CartBackendError(Exception):
    """A remote cart call failed; the caller must treat the mutation as not applied."""


class RemoteCartBackend:

    async def fetch(self, owner):
        """All lines owned by `owner`, joined with current product data."""
        raise NotImplementedError

    async def insert(self, owner, line):
        """Create a row for `line` and return its id."""
        raise NotImplementedError

    async def update(self, line_id, quantity):
        raise NotImplementedError

    async def delete(self, line_id):
        raise NotImplementedError

    async def delete_for_owner(self, owner):
        raise NotImplementedError


class ModelCartBackend(RemoteCartBackend):

    def _owned_by(self, owner):
        return (
            CartItem.objects
            .filter(user_id=owner)
            .select_related('product')
            .prefetch_related('product__images')
        )

    async def fetch(self, owner):
        try:
            return [item.as_line() async for item in self._owned_by(owner)]
        except DatabaseError as e:
            raise CartBackendError(f"Could not fetch cart for user {owner}: {e}") from e

    async def insert(self, owner, line):
        try:
            item = await self._create(owner, line)
        except DatabaseError as e:
            raise CartBackendError(
                f"Could not add product {line.product_id} to cart of user {owner}: {e}") from e
        logger.debug(f"Cart line {item.pk} created for user {owner}")
        return str(item.pk)

    @sync_to_async
    def _create(self, owner, line):
        # Savepoint so a constraint failure does not poison an outer transaction.
        with transaction.atomic():
            return CartItem.objects.create(
                user_id=owner,
                product_id=line.product_id,
                quantity=line.quantity,
                size=line.size or '',
                color=line.color or '',
            )

    async def update(self, line_id, quantity):
        try:
            updated = await CartItem.objects.filter(pk=line_id).aupdate(quantity=quantity)
        except (DatabaseError, ValidationError, ValueError) as e:
            raise CartBackendError(f"Could not update cart line {line_id}: {e}") from e
        if not updated:
            raise CartBackendError(f"Cart line {line_id} does not exist")

    async def delete(self, line_id):
        try:
            deleted, _ = await CartItem.objects.filter(pk=line_id).adelete()
        except (DatabaseError, ValidationError, ValueError) as e:
            raise CartBackendError(f"Could not delete cart line {line_id}: {e}") from e
        if not deleted:
            raise CartBackendError(f"Cart line {line_id} does not exist")

    async def delete_for_owner(self, owner):
        try:
            deleted, _ = await CartItem.objects.filter(user_id=owner).adelete()
        except DatabaseError as e:
            raise CartBackendError(f"Could not clear cart of user {owner}: {e}") from e
        logger.debug(f"Cleared {deleted} cart line(s) for user {owner}")
