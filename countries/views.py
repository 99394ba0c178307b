from django.db.models import F
from django.http import FileResponse
from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import CountryNotFound
from .image_utils import summary_image_path
from .metadata import get_last_refreshed
from .models import Country, normalize_name
from .serializers import CountrySerializer, StatusSerializer
from .services import refresh_country_data


def get_country_or_404(name):
    country = Country.objects.filter(name_key=normalize_name(name)).first()
    if country is None:
        raise CountryNotFound()
    return country


# -----------------------------------------------------------
# GET /countries → list all countries (with filter/sort)
# -----------------------------------------------------------
class CountryListView(generics.ListAPIView):
    serializer_class = CountrySerializer

    sort_fields = {
        'gdp': 'estimated_gdp',
        'population': 'population',
        'name': 'name',
    }

    def get_queryset(self):
        queryset = Country.objects.all()

        # Filtering
        region = self.request.query_params.get('region')
        currency = self.request.query_params.get('currency')
        if region:
            queryset = queryset.filter(region__iexact=region)
        if currency:
            queryset = queryset.filter(currency_code__iexact=currency)

        # Sorting (?sort=gdp_desc, ?sort=population_asc, ?sort=name_desc)
        sort_param = self.request.query_params.get('sort') or ''
        field, _, direction = sort_param.partition('_')
        if field in self.sort_fields and direction in ('asc', 'desc'):
            expression = F(self.sort_fields[field])
            if direction == 'desc':
                ordering = expression.desc(nulls_last=True)
            else:
                ordering = expression.asc(nulls_last=True)
            return queryset.order_by(ordering, 'id')

        return queryset.order_by('id')


# -----------------------------------------------------------
# GET /countries/:name → retrieve a country by name
# DELETE /countries/:name → delete a country
# -----------------------------------------------------------
class CountryDetailView(APIView):
    def get(self, request, name):
        country = get_country_or_404(name)
        serializer = CountrySerializer(country)
        return Response(serializer.data)

    def delete(self, request, name):
        country = get_country_or_404(name)
        country.delete()
        return Response({"message": f"{country.name} deleted successfully"})


# -----------------------------------------------------------
# POST /countries/refresh → refresh all data
# -----------------------------------------------------------
class CountryRefreshView(APIView):
    def post(self, request):
        # UpstreamUnavailable -> 503 and StorageError -> 500 via the exception handler
        result = refresh_country_data()
        return Response(
            {
                "message": "Data refreshed successfully",
                "created": result.created,
                "updated": result.updated,
                "skipped": result.skipped,
                "total_countries": result.total,
                "last_refreshed_at": result.last_refreshed_at.isoformat(),
            },
            status=status.HTTP_200_OK,
        )


# -----------------------------------------------------------
# GET /status → show snapshot summary
# -----------------------------------------------------------
class StatusView(APIView):
    def get(self, request):
        serializer = StatusSerializer({
            "total_countries": Country.objects.count(),
            "last_refreshed_at": get_last_refreshed(),
        })
        return Response(serializer.data, status=status.HTTP_200_OK)


# -----------------------------------------------------------
# GET /countries/image → serve summary image
# -----------------------------------------------------------
class CountryImageView(APIView):
    def get(self, request):
        try:
            image = open(summary_image_path(), 'rb')
        except FileNotFoundError:
            return Response(
                {"error": "Summary image not found"},
                status=status.HTTP_404_NOT_FOUND
            )
        return FileResponse(image, content_type='image/png')
