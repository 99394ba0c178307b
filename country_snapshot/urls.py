"""
Root URL configuration for country_snapshot.

All endpoints live in the countries app: /countries..., /status.
"""
from django.http import JsonResponse
from django.urls import include, path

urlpatterns = [
    path('', include('countries.urls')),
]


def custom_404(request, exception):
    return JsonResponse({"error": "Endpoint not found, try /countries or /status"}, status=404)


def custom_500(request):
    return JsonResponse({"error": "Internal server error"}, status=500)


handler404 = "country_snapshot.urls.custom_404"
handler500 = "country_snapshot.urls.custom_500"
