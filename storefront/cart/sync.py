import logging

from .backends import CartBackendError

logger = logging.getLogger(__name__)


class CartReconciler:
    """
    Merge a guest cart into the account's cart when a user signs in.

    The remote cart is authoritative: a guest line whose product, size and
    colour already exist remotely is dropped (its quantity is not added),
    and only the remaining guest lines are uploaded.
    """

    def __init__(self, state, store, backend):
        self.state = state
        self.store = store
        self.backend = backend

    async def reconcile(self, owner):
        """
        Run the merge once for `owner`. Returns False if the remote side
        failed; the cart then keeps whatever it last loaded successfully.
        """
        # Taken and cleared up front so a repeated sign-in never uploads twice.
        pending = self.store.load()
        self.store.clear()

        try:
            remote = await self.backend.fetch(owner)
            uploads = self.missing_remotely(pending, remote)
            if uploads:
                for line in uploads:
                    await self.backend.insert(owner, line)
                logger.info(f"Uploaded {len(uploads)} guest cart line(s) for user {owner}")
                # One re-fetch for the ids of the new rows; the guest snapshot is
                # gone by now, so this pass has nothing left to upload.
                remote = await self.backend.fetch(owner)
        except CartBackendError:
            logger.exception(f"Cart reconciliation failed for user {owner}")
            return False

        self.state.replace(remote)
        return True

    @staticmethod
    def missing_remotely(local_lines, remote_lines):
        remote_keys = {line.key for line in remote_lines}
        uploads = []
        for line in local_lines:
            if line.key in remote_keys:
                continue
            remote_keys.add(line.key)
            uploads.append(line)
        return uploads
