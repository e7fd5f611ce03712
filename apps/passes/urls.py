from django.urls import path

from . import views

app_name = 'passes'

urlpatterns = [
    path('api/mine/',                             views.api_my_passes,      name='api_mine'),
    path('api/consume/',                          views.api_consume,        name='api_consume'),
    path('api/refund/',                           views.api_refund,         name='api_refund'),
    path('api/orders/',                           views.api_create_order,   name='api_orders'),
    path('api/orders/<uuid:order_id>/complete/',  views.api_complete_order, name='api_order_complete'),
    path('api/orders/<uuid:order_id>/cancel/',    views.api_cancel_order,   name='api_order_cancel'),
    path('api/active/<uuid:active_pass_id>/usage/', views.api_set_remaining, name='api_set_remaining'),
]
