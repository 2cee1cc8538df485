"""Customer record store protocol."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from stampman.models import ActivityEntry, Customer


@runtime_checkable
class CustomerRecordStore(Protocol):
    """
    Persistence operations the ledger and the lookup protocol rely on.

    Implementations raise StampmanError("STORAGE_ERROR") when the backend
    is unreachable or rejects a write, and StampmanError("DUPLICATE_PHONE")
    when insert_customer hits an existing phone number.
    """

    def find_by_phone_suffix(self, suffix: str) -> list["Customer"]:
        """Customers whose phone_last4 equals suffix, newest first."""
        ...

    def find_by_name_substring(self, text: str, limit: int) -> list["Customer"]:
        """Case-insensitive name substring match, newest first."""
        ...

    def find_by_phone_full(self, phone: str) -> "Customer | None":
        ...

    def get_by_id(self, customer_id: int, for_update: bool = False) -> "Customer | None":
        """
        Fetch a customer.

        for_update=True locks the row until the surrounding transaction
        ends, so a read-modify-write cannot lose a concurrent update.
        """
        ...

    def insert_customer(self, name: str, phone_full: str, phone_last4: str) -> "Customer":
        ...

    def update_customer(
        self,
        customer_id: int,
        stamps: int,
        free_item_available: bool,
    ) -> "Customer":
        """Write stamps and the flag together as a single row update."""
        ...

    def append_activity(
        self,
        customer_id: int,
        reason: str,
        stamps_after: int,
        created_by: str = "",
    ) -> None:
        ...

    def list_activity(self, customer_id: int, limit: int) -> list["ActivityEntry"]:
        """Activity entries for a customer, newest first."""
        ...
