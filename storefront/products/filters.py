import django_filters
from .models import Category, Product


class ProductFilter(django_filters.FilterSet):
    """
    Catalog filters used by the shop page.

    `category` matches the category and everything below it in the tree.
    `size`, `color` and `tag` match if the product offers any of the given
    comma separated values.
    """
    category = django_filters.CharFilter(method='filter_category')
    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')
    size = django_filters.CharFilter(method='filter_sizes')
    color = django_filters.CharFilter(method='filter_colors')
    tag = django_filters.CharFilter(method='filter_tags')
    in_stock = django_filters.BooleanFilter(method='filter_in_stock')

    class Meta:
        model = Product
        fields = ['is_featured']

    def filter_category(self, queryset, name, value):
        slugs = [slug.strip() for slug in value.split(',') if slug.strip()]
        categories = Category.objects.filter(slug__in=slugs)
        descendants = set()
        for category in categories:
            descendants.update(
                category.get_descendants(include_self=True).values_list('pk', flat=True))
        return queryset.filter(category__in=descendants)

    def filter_sizes(self, queryset, name, value):
        return self._any_of(queryset, 'sizes', value)

    def filter_colors(self, queryset, name, value):
        return self._any_of(queryset, 'colors', value)

    def filter_tags(self, queryset, name, value):
        return self._any_of(queryset, 'tags', value)

    def filter_in_stock(self, queryset, name, value):
        if value:
            return queryset.filter(stock_quantity__gt=0)
        return queryset

    @staticmethod
    def _any_of(queryset, field, value):
        # JSON containment lookups are not portable to SQLite, so match in Python.
        wanted = {item.strip().lower() for item in value.split(',') if item.strip()}
        if not wanted:
            return queryset
        matching = [
            pk for pk, offered in queryset.values_list('pk', field)
            if wanted & {str(item).lower() for item in (offered or [])}
        ]
        return queryset.filter(pk__in=matching)
