"""Customer registration: opens the statistics record for a known buyer account."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from wholesale.customer.customer import Customer
from wholesale.domain import wholesale


@wholesale.command(part_of="Customer")
class RegisterCustomer:
    customer_id = Identifier(required=True)
    business_name = String(max_length=200)
    email = String(max_length=254)


@wholesale.command_handler(part_of=Customer)
class RegistrationHandler:
    @handle(RegisterCustomer)
    def register_customer(self, command):
        repo = current_domain.repository_for(Customer)
        customer = repo.get_or_none(command.customer_id)
        if customer is None:
            customer = Customer.register(command.customer_id)

        customer.business_name = command.business_name or customer.business_name
        customer.email = command.email or customer.email
        repo.add(customer)
        return str(customer.id)
