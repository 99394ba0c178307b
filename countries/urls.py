from django.urls import path
from .views import (
    CountryListView,
    CountryDetailView,
    CountryRefreshView,
    StatusView,
    CountryImageView,
)


urlpatterns = [
    path('status', StatusView.as_view(), name='status'),                                # GET /status
    path('countries', CountryListView.as_view(), name='country-list'),                  # GET /countries
    path('countries/refresh', CountryRefreshView.as_view(), name='country-refresh'),    # POST /countries/refresh
    path('countries/image', CountryImageView.as_view(), name='country-image'),          # GET /countries/image
    path('countries/<str:name>', CountryDetailView.as_view(), name='country-detail'),   # GET/DELETE /countries/:name
]
