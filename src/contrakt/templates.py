"""Fixed catalog of contract templates used as drafting context."""

import logging
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from contrakt.models import TemplateEntry

logger = logging.getLogger(__name__)


class TemplateLookupError(IndexError):
    """A template position outside the catalog was requested."""


RENT_SUBLET_TEMPLATE = """RENT SUBLET AGREEMENT

This Sublease Agreement is entered into on [DATE] between [SUBLESSOR_NAME]
("Sublessor") and [SUBLESSEE_NAME] ("Sublessee").

1. Premises. Sublessor sublets to Sublessee the premises at [PROPERTY_ADDRESS],
   held by Sublessor under a master lease dated [MASTER_LEASE_DATE] with
   [LANDLORD_NAME] ("Landlord").
2. Term. The sublease begins on [START_DATE] and ends on [END_DATE].
3. Rent. Sublessee shall pay [RENT_AMOUNT] per month, due on the [DUE_DAY] of
   each month, by [PAYMENT_METHOD].
4. Security Deposit. Sublessee shall deposit [DEPOSIT_AMOUNT], refundable within
   [REFUND_DAYS] days after the term ends, less lawful deductions.
5. Master Lease. Sublessee shall comply with all terms of the master lease.
   Landlord consent: [CONSENT_STATUS].
6. Utilities. [UTILITIES_ALLOCATION].
7. Condition. Sublessee shall return the premises in the condition received,
   ordinary wear and tear excepted.
8. Governing Law. This agreement is governed by the laws of [JURISDICTION].

Signatures:
Sublessor: ____________________  Date: ________
Sublessee: ____________________  Date: ________
"""

NDA_TEMPLATE = """MUTUAL NON-DISCLOSURE AGREEMENT

This Non-Disclosure Agreement is made on [DATE] between [PARTY_A_NAME] and
[PARTY_B_NAME] (each a "Party").

1. Purpose. The Parties wish to exchange information for [PURPOSE].
2. Confidential Information. Any non-public business, technical or financial
   information disclosed by one Party to the other, in any form, that is marked
   confidential or would reasonably be understood to be confidential.
3. Exclusions. Information that is public, already known to the recipient,
   independently developed, or lawfully received from a third party.
4. Obligations. The recipient shall use Confidential Information only for the
   Purpose, protect it with at least reasonable care, and not disclose it except
   to representatives bound by equivalent duties.
5. Term. Obligations last [CONFIDENTIALITY_PERIOD] from the date of disclosure.
6. Return of Materials. On request, the recipient shall return or destroy all
   Confidential Information.
7. Remedies. Unauthorized disclosure may cause irreparable harm; the disclosing
   Party may seek injunctive relief.
8. Governing Law. This agreement is governed by the laws of [JURISDICTION].

Signatures:
[PARTY_A_NAME]: ____________________  Date: ________
[PARTY_B_NAME]: ____________________  Date: ________
"""

FREELANCE_TEMPLATE = """FREELANCE SERVICES AGREEMENT

This agreement is made on [DATE] between [CLIENT_NAME] ("Client") and
[FREELANCER_NAME] ("Freelancer").

1. Services. Freelancer shall deliver: [SCOPE_OF_WORK].
2. Deliverables and Schedule. [DELIVERABLES] by [DEADLINE].
3. Fees. Client shall pay [FEE_AMOUNT] ([FEE_STRUCTURE]). Invoices are due within
   [PAYMENT_TERMS] days.
4. Revisions. The fee includes [REVISION_COUNT] rounds of revisions.
5. Intellectual Property. On full payment, rights in the deliverables transfer to
   Client. Freelancer may show the work in a portfolio unless stated otherwise.
6. Independent Contractor. Freelancer is not an employee of Client.
7. Confidentiality. Each party keeps the other's non-public information confidential.
8. Termination. Either party may terminate with [NOTICE_PERIOD] written notice;
   Client pays for work completed to date.
9. Governing Law. This agreement is governed by the laws of [JURISDICTION].

Signatures:
Client: ____________________  Date: ________
Freelancer: ____________________  Date: ________
"""

COLLABORATION_TEMPLATE = """PROJECT COLLABORATION AGREEMENT

This agreement is made on [DATE] between [COLLABORATOR_NAMES] (the "Collaborators").

1. Project. The Collaborators will jointly work on [PROJECT_DESCRIPTION].
2. Roles. [ROLES_AND_RESPONSIBILITIES].
3. Contributions. Each Collaborator contributes [CONTRIBUTIONS].
4. Ownership. Project results are owned [OWNERSHIP_SPLIT].
5. Revenue Sharing. Net revenue is shared [REVENUE_SPLIT].
6. Decision Making. Decisions are taken by [DECISION_PROCESS].
7. Withdrawal. A Collaborator may withdraw with [NOTICE_PERIOD] notice; rights in
   prior contributions are handled as follows: [WITHDRAWAL_TERMS].
8. Dispute Resolution. Disputes are first resolved by negotiation, then
   [DISPUTE_MECHANISM].
9. Governing Law. This agreement is governed by the laws of [JURISDICTION].

Signatures:
[COLLABORATOR_SIGNATURES]
"""

SERVICE_TEMPLATE = """SERVICE AGREEMENT

This agreement is made on [DATE] between [CUSTOMER_NAME] ("Customer") and
[PROVIDER_NAME] ("Provider").

1. Services. Provider shall perform [SERVICE_DESCRIPTION].
2. Service Levels. [SERVICE_LEVELS].
3. Term. The agreement starts on [START_DATE] and continues for [TERM_LENGTH],
   renewing [RENEWAL_TERMS].
4. Fees. Customer shall pay [FEES], invoiced [BILLING_CYCLE].
5. Warranties. Provider performs the services in a professional manner.
6. Limitation of Liability. Liability is limited to fees paid in the
   [LIABILITY_PERIOD] preceding the claim.
7. Termination. Either party may terminate for material breach not cured within
   [CURE_PERIOD] days.
8. Governing Law. This agreement is governed by the laws of [JURISDICTION].

Signatures:
Customer: ____________________  Date: ________
Provider: ____________________  Date: ________
"""

DEFAULT_TEMPLATES: List[Tuple[str, str]] = [
    ("Rent Sublet Agreement", RENT_SUBLET_TEMPLATE),
    ("Non-Disclosure Agreement", NDA_TEMPLATE),
    ("Freelance Services Agreement", FREELANCE_TEMPLATE),
    ("Project Collaboration Agreement", COLLABORATION_TEMPLATE),
    ("Service Agreement", SERVICE_TEMPLATE),
]


class TemplateIndex:
    """Read-only, ordered catalog addressable by position or by name."""

    def __init__(self, entries: Sequence[TemplateEntry]):
        for position, entry in enumerate(entries):
            if entry.id != position:
                raise ValueError(
                    f"Template '{entry.name}' has id {entry.id} but sits at position {position}"
                )
        self._entries = tuple(entries)

    @classmethod
    def from_pairs(cls, pairs: Sequence[Tuple[str, str]]) -> "TemplateIndex":
        """Build an index from ``(name, body)`` pairs in catalog order."""
        return cls([TemplateEntry(id=i, name=name, body=body) for i, (name, body) in enumerate(pairs)])

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TemplateEntry]:
        return iter(self._entries)

    def get(self, position: int) -> TemplateEntry:
        """Return the entry at a zero-based position.

        Raises:
            TemplateLookupError: if the position is outside the catalog.
        """
        if isinstance(position, bool) or not 0 <= position < len(self._entries):
            raise TemplateLookupError(
                f"Template position {position} out of range (catalog has {len(self._entries)})"
            )
        return self._entries[position]

    def find(self, name: str) -> Optional[TemplateEntry]:
        """Return the entry whose name matches exactly, or None."""
        return next((entry for entry in self._entries if entry.name == name), None)

    def resolve(self, selection: Union[int, str]) -> str:
        """Turn a parsed selection into drafting context.

        Positions resolve to the template body (and may raise
        TemplateLookupError). Names resolve to the matching body; an unknown
        name is returned verbatim as free-text context.
        """
        if isinstance(selection, int):
            return self.get(selection).body
        entry = self.find(selection)
        if entry is None:
            logger.info("Template selection '%s' not in catalog; using it as free text", selection)
            return selection
        return entry.body

    def selection_menu(self) -> str:
        """Numbered list of template names, one per line."""
        return "\n".join(f"{entry.id}: {entry.name}" for entry in self._entries)


_TEMPLATE_INDEX: Optional[TemplateIndex] = None


def get_template_index() -> TemplateIndex:
    """Return the process-wide template index, built on first use."""
    global _TEMPLATE_INDEX
    if _TEMPLATE_INDEX is None:
        _TEMPLATE_INDEX = TemplateIndex.from_pairs(DEFAULT_TEMPLATES)
    return _TEMPLATE_INDEX
