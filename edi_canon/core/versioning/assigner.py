"""
Inline version assignment at ingestion time.
"""

from edi_canon.core.models import CanonicalHeader
from edi_canon.core.store import UnitOfWork


class VersionAssigner:
    """
    Stamps a new header with its transmission number.

    version = 1 + number of stored headers of the same (company, customer PO)
    with a strictly earlier download timestamp, counted inside the unit of
    work that inserts the header. Out-of-order ingestion can make this
    wrong; VersionRecalculator fixes it after the batch.
    """

    def assign(self, header: CanonicalHeader, uow: UnitOfWork) -> CanonicalHeader:
        earlier = uow.count_earlier_headers(
            header.company, header.customer_po, header.download_timestamp
        )
        return header.model_copy(update={"version": earlier + 1})
