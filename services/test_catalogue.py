import pytest

from services           import catalogue
from services.catalogue import BUILDERS, ServiceMethod, build_call
from traffic.dispatcher import Call


def test_every_member_has_a_builder():
    assert set(BUILDERS) == set(ServiceMethod)


def test_member_names_service_and_method():
    assert ServiceMethod.RPC_VERSION.service == "system"
    assert ServiceMethod.RPC_VERSION.method == "rpcVersion"
    assert ServiceMethod.POST_CC_PAYMENT.value == ("accounts", "postCCPayment")


@pytest.mark.parametrize("member, args, expected", [
    (ServiceMethod.RPC_VERSION, (), []),
    (ServiceMethod.SERVICES, (), []),
    (ServiceMethod.LIST_ROUTES, (), []),
    (ServiceMethod.GET_PROFILE, (42,), [42]),
    (ServiceMethod.ACCOUNT_SUMMARY, ("C-1",), ["C-1"]),
    (ServiceMethod.GET_ROUTE_INFO, (7,), [7]),
    (ServiceMethod.LIST_TRUCK_TICKETS, (7,), [7]),
    (ServiceMethod.DELIVER_ROUTE_TICKETS, ([1, 2],), [[1, 2]]),
    (ServiceMethod.FIND_CUSTOMERS, ({"lastName": "Ng"},), [{"lastName": "Ng"}]),
    (ServiceMethod.UPDATE_PROFILE, (9, {"city": "Oslo"}), [9, {"city": "Oslo"}]),
    (ServiceMethod.CALLINS, (3,), [3, None, None]),
    (ServiceMethod.CALLINS, (3, "2024-01-01", "2024-02-01"),
     [3, "2024-01-01", "2024-02-01"]),
])
def test_build_call_args(member, args, expected):
    call = build_call(member, *args, request_id=11)
    assert call == Call(member.service, member.method, expected, 11)


def test_build_call_rejects_unknown_member():
    with pytest.raises(TypeError):
        build_call(("system", "rpcVersion"))


def test_route_builders_named_after_method():
    assert catalogue.list_route_stops.__name__ == "list_route_stops"
    assert catalogue.get_route_info.__name__ == "get_route_info"


@pytest.mark.parametrize("member", [
    ServiceMethod.AVAILABLE_PICKUPS,
    ServiceMethod.GET_SCHEDULED_PICKUPS,
    ServiceMethod.GET_PROFILE,
    ServiceMethod.ACCOUNT_SUMMARY,
    ServiceMethod.SERVICE_TRANSACTION_DETAIL,
    ServiceMethod.LIST_ROUTE_STOPS,
])
@pytest.mark.parametrize("value", [None, ""])
def test_required_argument(member, value):
    with pytest.raises(ValueError, match="required"):
        build_call(member, value)


def test_zero_is_a_valid_identifier():
    assert build_call(ServiceMethod.GET_PROFILE, 0).args == [0]


@pytest.mark.parametrize("member, bad", [
    (ServiceMethod.FIND_CUSTOMERS, "Ng"),
    (ServiceMethod.CREATE_CUSTOMER, ["firstName"]),
    (ServiceMethod.DELIVER_ROUTE_TICKETS, (1, 2)),
    (ServiceMethod.SCHEDULE_PICKUP, None),
])
def test_type_checks(member, bad):
    with pytest.raises(TypeError, match="must be type"):
        build_call(member, bad)


def test_create_customer_lists_missing_fields():
    with pytest.raises(ValueError) as info:
        build_call(ServiceMethod.CREATE_CUSTOMER, {"firstName": "Ada"})
    assert str(info.value) == (
        "Argument 'profileData' is missing the following fields: lastName")


def test_schedule_pickup_argument_order():
    call = build_call(ServiceMethod.SCHEDULE_PICKUP, {
        "date": "2024-05-01", "routeNumber": 12, "customerId": 900,
        "message": "side door",
    })
    assert call.args == [900, 12, "2024-05-01", "side door"]

    call = build_call(ServiceMethod.SCHEDULE_PICKUP, {
        "date": "2024-05-01", "routeNumber": 12, "customerId": 900,
    })
    assert call.args[-1] is None


def test_schedule_pickup_missing_fields():
    with pytest.raises(ValueError, match="routeNumber, date"):
        build_call(ServiceMethod.SCHEDULE_PICKUP, {"customerId": 1})


def test_transaction_history_blank_dates():
    call = build_call(ServiceMethod.TRANSACTION_HISTORY, 5, "", None)
    assert call.args == [5, None, None]


def test_post_cc_payment_requires_every_field():
    args = [5, 19.99, "4111111111111111", "12/27", "A1B2"]
    assert build_call(ServiceMethod.POST_CC_PAYMENT, *args).args == args
    for i in range(len(args)):
        broken = list(args)
        broken[i] = ""
        with pytest.raises(ValueError):
            build_call(ServiceMethod.POST_CC_PAYMENT, *broken)


def test_introspection_calls():
    assert catalogue.methods("routes") == Call("routes", "methods")
    assert catalogue.describe_method("routes", "callins", request_id=2) == \
        Call("routes", "describeMethod", ["callins"], 2)
    assert catalogue.version("accounts") == Call("accounts", "version")
    with pytest.raises(TypeError):
        catalogue.methods(None)


def test_customer_profile_strips_phone():
    profile = catalogue.customer_profile(customer_id=3,
                                         phone="(555) 123-4567",
                                         first_name="Ada", email="")
    assert profile == {"phone": "5551234567", "customerId": 3,
                       "firstName": "Ada"}


def test_customer_profile_always_has_phone():
    assert catalogue.customer_profile() == {"phone": ""}
