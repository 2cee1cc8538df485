from django.urls import path

from . import views

app_name = "stampman"

urlpatterns = [
    # Kiosk
    path("kiosk/lookup/", views.KioskLookupView.as_view(), name="kiosk-lookup"),
    path("kiosk/verify/", views.KioskVerifyView.as_view(), name="kiosk-verify"),
    path("kiosk/choose/", views.KioskChooseView.as_view(), name="kiosk-choose"),
    path("kiosk/register/", views.KioskRegisterView.as_view(), name="kiosk-register"),
    path("kiosk/current/", views.KioskCurrentView.as_view(), name="kiosk-current"),
    # Employee panel
    path("employee/login/", views.EmployeeLoginView.as_view(), name="employee-login"),
    path("employee/logout/", views.EmployeeLogoutView.as_view(), name="employee-logout"),
    path("employee/search/", views.EmployeeSearchView.as_view(), name="employee-search"),
    path(
        "employee/customers/<int:customer_id>/",
        views.EmployeeCustomerView.as_view(),
        name="employee-customer",
    ),
    path(
        "employee/customers/<int:customer_id>/stamp/",
        views.EmployeeTransactionView.as_view(action="stamp"),
        name="employee-stamp",
    ),
    path(
        "employee/customers/<int:customer_id>/redeem/",
        views.EmployeeTransactionView.as_view(action="redeem"),
        name="employee-redeem",
    ),
    path(
        "employee/customers/<int:customer_id>/purchase/",
        views.EmployeeTransactionView.as_view(action="purchase"),
        name="employee-purchase",
    ),
]
