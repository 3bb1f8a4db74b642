"""
High-level Compassmax client.

Usage:
    config = ClientConfig.from_file("compassmax.json")
    async with CompassClient(config) as client:
        version  = await client.system.rpc_version()
        profile  = await client.customer_profile.get_profile(1234)
        results  = await client.util.batch([
            (ServiceMethod.GET_PROFILE, [1234]),
            (ServiceMethod.ACCOUNT_SUMMARY, [1234]),
        ])
"""

import logging
from typing import Callable

from config.settings    import ClientConfig
from core.errors        import ApplicationError
from services           import catalogue
from services.catalogue import ServiceMethod, build_call
from traffic.connection import Connection
from traffic.dispatcher import Call, RequestDispatcher

logger = logging.getLogger("Compassmax.Client")

TRANSACTION_FIELDS = ("transactionId", "amount", "date", "description",
                      "ticketNum")


class _ServiceGroup:

    def __init__(self, client: "CompassClient"):
        self._client = client

    async def _call(self, member: ServiceMethod, *args, request_id=None):
        return await self._client.call(member, *args, request_id=request_id)


class Customers(_ServiceGroup):

    async def find_customers(self, search_terms: dict, request_id=None):
        return await self._call(ServiceMethod.FIND_CUSTOMERS, search_terms,
                                request_id=request_id)

    async def create_customer(self, profile_data: dict, request_id=None):
        return await self._call(ServiceMethod.CREATE_CUSTOMER, profile_data,
                                request_id=request_id)

    async def available_pickups(self, customer_id, request_id=None):
        return await self._call(ServiceMethod.AVAILABLE_PICKUPS, customer_id,
                                request_id=request_id)

    async def schedule_pickup(self, data: dict, request_id=None):
        return await self._call(ServiceMethod.SCHEDULE_PICKUP, data,
                                request_id=request_id)

    async def get_scheduled_pickups(self, customer_id, request_id=None):
        return await self._call(ServiceMethod.GET_SCHEDULED_PICKUPS,
                                customer_id, request_id=request_id)


class CustomerProfile(_ServiceGroup):

    profile = staticmethod(catalogue.customer_profile)

    async def update_profile(self, customer_id, profile_data: dict,
                             request_id=None):
        return await self._call(ServiceMethod.UPDATE_PROFILE, customer_id,
                                profile_data, request_id=request_id)

    async def get_profile(self, customer_id, request_id=None):
        return await self._call(ServiceMethod.GET_PROFILE, customer_id,
                                request_id=request_id)


class Accounts(_ServiceGroup):

    async def transaction_history(self, customer_id, start_date=None,
                                  end_date=None, request_id=None):
        """History with each ``[id, amount, date, description, ticket]``
        row reshaped into a dict."""
        result = await self._call(ServiceMethod.TRANSACTION_HISTORY,
                                  customer_id, start_date, end_date,
                                  request_id=request_id)
        result["data"] = [dict(zip(TRANSACTION_FIELDS, row))
                          for row in result.get("data") or []]
        return result

    async def service_transaction_detail(self, transaction_id,
                                         request_id=None):
        return await self._call(ServiceMethod.SERVICE_TRANSACTION_DETAIL,
                                transaction_id, request_id=request_id)

    async def post_cc_payment(self, customer_id, amount, card_number,
                              exp_date, auth_number, request_id=None):
        return await self._call(ServiceMethod.POST_CC_PAYMENT, customer_id,
                                amount, card_number, exp_date, auth_number,
                                request_id=request_id)

    async def account_summary(self, customer_id, request_id=None):
        return await self._call(ServiceMethod.ACCOUNT_SUMMARY, customer_id,
                                request_id=request_id)


class Tickets(_ServiceGroup):

    async def deliver_route_tickets(self, ticket_ids: list, request_id=None):
        return await self._call(ServiceMethod.DELIVER_ROUTE_TICKETS,
                                ticket_ids, request_id=request_id)

    async def get_tickets(self, customer_id, start_date=None, end_date=None,
                          request_id=None) -> list:
        """
        Ticket details for every service transaction of a customer.

        Each ticket is annotated with the transaction description and
        date, and the list is sorted by ticket number. The first failed
        detail call is raised.
        """
        history = await self._client.accounts.transaction_history(
            customer_id, start_date, end_date, request_id=request_id,
        )
        by_ticket = {t["ticketNum"]: t for t in history["data"]
                     if t.get("ticketNum")}
        if not by_ticket:
            return []
        logger.debug("Fetching %d tickets for customer %s", len(by_ticket),
                     customer_id)

        calls = [catalogue.service_transaction_detail(
                     t["transactionId"], request_id=t["transactionId"])
                 for t in by_ticket.values()]
        tickets = await self._client.send(calls, as_batch=True)

        for ticket in tickets:
            if isinstance(ticket, ApplicationError):
                raise ticket
            data = ticket.get("data")
            if not data:
                continue
            transaction = by_ticket.get(data.get("ticketNum"))
            if transaction:
                data["description"] = transaction["description"]
                data["createdDate"] = transaction["date"]

        tickets.sort(key=lambda t: (t.get("data") or {}).get("ticketNum", 0))
        return tickets


class Routes(_ServiceGroup):

    async def callins(self, route_number, start_date=None, end_date=None,
                      request_id=None):
        return await self._call(ServiceMethod.CALLINS, route_number,
                                start_date, end_date, request_id=request_id)

    async def list_routes(self, request_id=None):
        return await self._call(ServiceMethod.LIST_ROUTES,
                                request_id=request_id)

    async def list_route_stops(self, route_id, request_id=None):
        return await self._call(ServiceMethod.LIST_ROUTE_STOPS, route_id,
                                request_id=request_id)

    async def get_route_info(self, route_id, request_id=None):
        return await self._call(ServiceMethod.GET_ROUTE_INFO, route_id,
                                request_id=request_id)

    async def list_ready_tickets(self, route_id, request_id=None):
        return await self._call(ServiceMethod.LIST_READY_TICKETS, route_id,
                                request_id=request_id)

    async def list_truck_tickets(self, route_id, request_id=None):
        return await self._call(ServiceMethod.LIST_TRUCK_TICKETS, route_id,
                                request_id=request_id)


class System(_ServiceGroup):

    async def services(self, request_id=None):
        return await self._call(ServiceMethod.SERVICES, request_id=request_id)

    async def rpc_version(self, request_id=None):
        return await self._call(ServiceMethod.RPC_VERSION,
                                request_id=request_id)


class Util(_ServiceGroup):

    async def methods(self, service: str, request_id=None):
        return await self._client.send(
            catalogue.methods(service, request_id=request_id))

    async def describe_method(self, service: str, method: str,
                              request_id=None):
        return await self._client.send(
            catalogue.describe_method(service, method, request_id=request_id))

    async def version(self, service: str, request_id=None):
        return await self._client.send(
            catalogue.version(service, request_id=request_id))

    async def batch(self, entries) -> list:
        """
        Send several calls in one message.

        *entries* holds ``Call`` objects or ``(ServiceMethod, args)`` /
        ``(ServiceMethod, args, request_id)`` tuples. The result list
        follows entry order; failed calls appear as ``ApplicationError``
        instances.
        """
        if isinstance(entries, (Call, tuple)):
            entries = [entries]
        calls = []
        for entry in entries:
            if isinstance(entry, Call):
                calls.append(entry)
                continue
            member, args, *rest = entry
            request_id = rest[0] if rest else None
            calls.append(build_call(member, *args, request_id=request_id))
        logger.debug("Sending batch of %d calls", len(calls))
        return await self._client.send(calls, as_batch=True)


class CompassClient:
    """
    One configured client: a ``Connection``, its ``RequestDispatcher``
    and the service groups.
    """

    def __init__(self, config: ClientConfig | dict,
                 nonce_source: Callable[[int], bytes] | None = None):
        if not isinstance(config, ClientConfig):
            config = ClientConfig.from_dict(config)
        self.config     = config
        self.connection = Connection(config, nonce_source=nonce_source)
        self.dispatcher = RequestDispatcher(self.connection)

        self.customers        = Customers(self)
        self.customer_profile = CustomerProfile(self)
        self.accounts         = Accounts(self)
        self.tickets          = Tickets(self)
        self.routes           = Routes(self)
        self.system           = System(self)
        self.util             = Util(self)

    async def send(self, calls, as_batch: bool = False):
        return await self.dispatcher.send(calls, as_batch=as_batch)

    async def call(self, member: ServiceMethod, *args, request_id=None):
        return await self.send(build_call(member, *args,
                                          request_id=request_id))

    def close(self):
        self.connection.close()

    async def __aenter__(self) -> "CompassClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False
