"""
Closed catalogue of RPC methods and their call builders.

Each ``ServiceMethod`` member names one ``(service, method)`` pair and has
exactly one builder that validates its arguments and returns a ``Call``.
Builders never touch the network.
"""

import enum
import re
from typing import Callable

from traffic.dispatcher import Call


class ServiceMethod(enum.Enum):
    # customers
    FIND_CUSTOMERS         = ("customers", "findCustomers")
    CREATE_CUSTOMER        = ("customers", "createCustomer")
    AVAILABLE_PICKUPS      = ("customers", "availablePickups")
    SCHEDULE_PICKUP        = ("customers", "schedulePickup")
    GET_SCHEDULED_PICKUPS  = ("customers", "getScheduledPickups")
    # customerProfile
    UPDATE_PROFILE         = ("customerProfile", "updateProfile")
    GET_PROFILE            = ("customerProfile", "getProfile")
    # tickets
    DELIVER_ROUTE_TICKETS  = ("tickets", "deliverRouteTickets")
    # accounts
    TRANSACTION_HISTORY    = ("accounts", "transactionHistory")
    SERVICE_TRANSACTION_DETAIL = ("accounts", "serviceTransactionDetail")
    POST_CC_PAYMENT        = ("accounts", "postCCPayment")
    ACCOUNT_SUMMARY        = ("accounts", "accountSummary")
    # routes
    CALLINS                = ("routes", "callins")
    LIST_ROUTES            = ("routes", "listRoutes")
    LIST_ROUTE_STOPS       = ("routes", "listRouteStops")
    GET_ROUTE_INFO         = ("routes", "getRouteInfo")
    LIST_READY_TICKETS     = ("routes", "listReadyTickets")
    LIST_TRUCK_TICKETS     = ("routes", "listTruckTickets")
    # system
    SERVICES               = ("system", "services")
    RPC_VERSION            = ("system", "rpcVersion")

    @property
    def service(self) -> str:
        return self.value[0]

    @property
    def method(self) -> str:
        return self.value[1]


# ── validation helpers ───────────────────────────────────────────
def check_type(name: str, value, expected: type):
    if isinstance(value, bool) and expected is not bool \
            or not isinstance(value, expected):
        raise TypeError(
            f"argument '{name}' must be type {expected.__name__}"
        )


def require(name: str, value):
    if value is None or value == "":
        raise ValueError(f"{name} required")


def find_missing_fields(name: str, data: dict, fields) -> str | None:
    missing = [f for f in fields if data.get(f) is None]
    if missing:
        return (f"Argument '{name}' is missing the following fields: "
                + ", ".join(missing))
    return None


# ── builders ─────────────────────────────────────────────────────
BUILDERS: dict[ServiceMethod, Callable[..., Call]] = {}


def _builder(member: ServiceMethod):
    def register(fn):
        BUILDERS[member] = fn
        return fn
    return register


def _call(member: ServiceMethod, args: list, request_id) -> Call:
    return Call(member.service, member.method, args, request_id)


@_builder(ServiceMethod.FIND_CUSTOMERS)
def find_customers(search_terms: dict, request_id=None) -> Call:
    check_type("searchTerms", search_terms, dict)
    return _call(ServiceMethod.FIND_CUSTOMERS, [search_terms], request_id)


@_builder(ServiceMethod.CREATE_CUSTOMER)
def create_customer(profile_data: dict, request_id=None) -> Call:
    check_type("profileData", profile_data, dict)
    missing = find_missing_fields("profileData", profile_data,
                                  ["firstName", "lastName"])
    if missing:
        raise ValueError(missing)
    return _call(ServiceMethod.CREATE_CUSTOMER, [profile_data], request_id)


@_builder(ServiceMethod.AVAILABLE_PICKUPS)
def available_pickups(customer_id, request_id=None) -> Call:
    require("customerId", customer_id)
    return _call(ServiceMethod.AVAILABLE_PICKUPS, [customer_id], request_id)


@_builder(ServiceMethod.SCHEDULE_PICKUP)
def schedule_pickup(data: dict, request_id=None) -> Call:
    check_type("data", data, dict)
    missing = find_missing_fields("data", data,
                                  ["customerId", "routeNumber", "date"])
    if missing:
        raise ValueError(missing)
    args = [data["customerId"], data["routeNumber"], data["date"],
            data.get("message")]
    return _call(ServiceMethod.SCHEDULE_PICKUP, args, request_id)


@_builder(ServiceMethod.GET_SCHEDULED_PICKUPS)
def get_scheduled_pickups(customer_id, request_id=None) -> Call:
    require("customerId", customer_id)
    return _call(ServiceMethod.GET_SCHEDULED_PICKUPS, [customer_id],
                 request_id)


@_builder(ServiceMethod.UPDATE_PROFILE)
def update_profile(customer_id, profile_data: dict, request_id=None) -> Call:
    require("customerId", customer_id)
    check_type("profileData", profile_data, dict)
    return _call(ServiceMethod.UPDATE_PROFILE, [customer_id, profile_data],
                 request_id)


@_builder(ServiceMethod.GET_PROFILE)
def get_profile(customer_id, request_id=None) -> Call:
    require("customerId", customer_id)
    return _call(ServiceMethod.GET_PROFILE, [customer_id], request_id)


@_builder(ServiceMethod.DELIVER_ROUTE_TICKETS)
def deliver_route_tickets(ticket_ids: list, request_id=None) -> Call:
    check_type("ticketIds", ticket_ids, list)
    return _call(ServiceMethod.DELIVER_ROUTE_TICKETS, [ticket_ids],
                 request_id)


@_builder(ServiceMethod.TRANSACTION_HISTORY)
def transaction_history(customer_id, start_date=None, end_date=None,
                        request_id=None) -> Call:
    require("customerId", customer_id)
    return _call(ServiceMethod.TRANSACTION_HISTORY,
                 [customer_id, start_date or None, end_date or None],
                 request_id)


@_builder(ServiceMethod.SERVICE_TRANSACTION_DETAIL)
def service_transaction_detail(transaction_id, request_id=None) -> Call:
    require("transactionId", transaction_id)
    return _call(ServiceMethod.SERVICE_TRANSACTION_DETAIL, [transaction_id],
                 request_id)


@_builder(ServiceMethod.POST_CC_PAYMENT)
def post_cc_payment(customer_id, amount, card_number, exp_date, auth_number,
                    request_id=None) -> Call:
    """Record a card payment; the server answers with a transactionId."""
    for name, value in (("customerId", customer_id), ("amount", amount),
                        ("cardNumber", card_number), ("expDate", exp_date),
                        ("authNumber", auth_number)):
        require(name, value)
    return _call(ServiceMethod.POST_CC_PAYMENT,
                 [customer_id, amount, card_number, exp_date, auth_number],
                 request_id)


@_builder(ServiceMethod.ACCOUNT_SUMMARY)
def account_summary(customer_id, request_id=None) -> Call:
    require("customerId", customer_id)
    return _call(ServiceMethod.ACCOUNT_SUMMARY, [customer_id], request_id)


@_builder(ServiceMethod.CALLINS)
def callins(route_number, start_date=None, end_date=None,
            request_id=None) -> Call:
    require("routeNumber", route_number)
    return _call(ServiceMethod.CALLINS, [route_number, start_date, end_date],
                 request_id)


@_builder(ServiceMethod.LIST_ROUTES)
def list_routes(request_id=None) -> Call:
    return _call(ServiceMethod.LIST_ROUTES, [], request_id)


def _route_call(member: ServiceMethod):
    def build(route_id, request_id=None) -> Call:
        require("routeId", route_id)
        return _call(member, [route_id], request_id)
    build.__name__ = re.sub(r"(?<!^)(?=[A-Z])", "_", member.method).lower()
    BUILDERS[member] = build
    return build


list_route_stops   = _route_call(ServiceMethod.LIST_ROUTE_STOPS)
get_route_info     = _route_call(ServiceMethod.GET_ROUTE_INFO)
list_ready_tickets = _route_call(ServiceMethod.LIST_READY_TICKETS)
list_truck_tickets = _route_call(ServiceMethod.LIST_TRUCK_TICKETS)


@_builder(ServiceMethod.SERVICES)
def services(request_id=None) -> Call:
    return _call(ServiceMethod.SERVICES, [], request_id)


@_builder(ServiceMethod.RPC_VERSION)
def rpc_version(request_id=None) -> Call:
    return _call(ServiceMethod.RPC_VERSION, [], request_id)


def build_call(member: ServiceMethod, *args, request_id=None) -> Call:
    """Build the call for *member* with positional method arguments."""
    if not isinstance(member, ServiceMethod):
        raise TypeError(f"{member!r} is not a supported service method")
    return BUILDERS[member](*args, request_id=request_id)


# ── introspection (every service answers these) ──────────────────
def methods(service: str, request_id=None) -> Call:
    check_type("service", service, str)
    return Call(service, "methods", [], request_id)


def describe_method(service: str, method: str, request_id=None) -> Call:
    check_type("service", service, str)
    check_type("method", method, str)
    return Call(service, "describeMethod", [method], request_id)


def version(service: str, request_id=None) -> Call:
    check_type("service", service, str)
    return Call(service, "version", [], request_id)


# ── payload helpers ──────────────────────────────────────────────
_PHONE_NOISE = re.compile(r"[()\-\s]")


def customer_profile(customer_id=None, phone=None, email=None,
                     address1=None, address2=None, city=None, state=None,
                     zip=None, first_name=None, last_name=None,
                     starch_pref=None, return_pref=None, instructions=None,
                     username=None) -> dict:
    """
    Build a profile record for ``updateProfile`` / ``createCustomer``.

    ``phone`` is always present (empty string when unknown) because the
    server rejects profiles without it.
    """
    profile = {"phone": _PHONE_NOISE.sub("", phone) if phone else ""}
    optional = {
        "customerId":   customer_id,
        "email":        email,
        "address1":     address1,
        "address2":     address2,
        "city":         city,
        "state":        state,
        "zip":          zip,
        "firstName":    first_name,
        "lastName":     last_name,
        "starchPref":   starch_pref,
        "returnPref":   return_pref,
        "instructions": instructions,
        "username":     username,
    }
    profile.update({k: v for k, v in optional.items() if v})
    return profile
