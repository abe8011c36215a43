from django.urls import path
from . import views

app_name = 'subscriptions'

urlpatterns = [
    path('plans/', views.active_plans, name='active_plans'),
    path('admin/plans/', views.plan_list_create, name='plan_list_create'),
    path('admin/plans/<int:plan_id>/', views.plan_detail, name='plan_detail'),
    path('admin/plans/<int:plan_id>/toggle/', views.toggle_plan, name='toggle_plan'),
    path('admin/purchases/', views.admin_purchases, name='admin_purchases'),
    path('purchase/', views.initiate_purchase, name='initiate_purchase'),
    path('purchase/verify/', views.verify_payment, name='verify_payment'),
    path('my/', views.my_subscriptions, name='my_subscriptions'),
    path('my/<int:user_subscription_id>/', views.subscription_detail, name='subscription_detail'),
    path('my/<int:user_subscription_id>/cancel/', views.cancel_subscription, name='cancel_subscription'),
    path('my/<int:user_subscription_id>/vendor-switch/', views.request_vendor_switch, name='request_vendor_switch'),
    path('vendor/customers/', views.vendor_customers, name='vendor_customers'),
    path('my/transactions/', views.my_transactions, name='my_transactions'),
    path('admin/transactions/', views.admin_transactions, name='admin_transactions'),
    path('admin/transactions/stats/', views.transaction_stats, name='transaction_stats'),
    path('admin/transactions/failed/', views.failed_transactions, name='failed_transactions'),
    path('admin/transactions/<int:transaction_id>/', views.transaction_detail, name='transaction_detail'),
    path('admin/transactions/<int:transaction_id>/refund/', views.refund_transaction, name='refund_transaction'),
]
