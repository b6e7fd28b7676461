"""Named monotonic counters used for human-readable order numbers.

A counter is created by its own command the first time it is needed, so
the creation commits before any number is drawn from it. Each number is then
allocated and committed in its own command, before the order that uses it.
Two allocations racing on the same counter collide on the aggregate version
and the loser is retried with the fresh value. Failed orders leave gaps.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.settings import order_number_start


@storefront.aggregate
class Sequence:
    name = String(identifier=True, max_length=50)
    last_value = Integer(required=True, min_value=0)

    def advance(self) -> int:
        self.last_value += 1
        return self.last_value


@storefront.command(part_of=Sequence)
class CreateSequence:
    name = String(required=True, max_length=50)
    start = Integer(required=True, min_value=1)


@storefront.command(part_of=Sequence)
class AllocateNumber:
    name = String(required=True, max_length=50)


@storefront.command_handler(part_of=Sequence)
class SequenceHandler:
    @handle(CreateSequence)
    def create(self, command):
        repo = current_domain.repository_for(Sequence)
        if _find(command.name) is None:
            repo.add(Sequence(name=command.name, last_value=command.start - 1))

    @handle(AllocateNumber)
    def allocate(self, command):
        repo = current_domain.repository_for(Sequence)
        sequence = repo.get(command.name)
        value = sequence.advance()
        repo.add(sequence)
        return value


def _find(name):
    try:
        return current_domain.repository_for(Sequence).get(name)
    except ObjectNotFoundError:
        return None


def next_value(name: str, start: int) -> int:
    if _find(name) is None:
        current_domain.process(CreateSequence(name=name, start=start), asynchronous=False)
    return current_domain.process(AllocateNumber(name=name), asynchronous=False)


def next_order_number() -> str:
    return f"ORD-{next_value('order', order_number_start())}"
