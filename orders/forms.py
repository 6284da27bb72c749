from django import forms
from django.utils.translation import gettext_lazy as _

from catalog.models import Customer

from .exceptions import OrderValidationError
from .state_machine import OrderStatus


class OrderItemForm(forms.Form):
    product_id = forms.IntegerField(min_value=1)
    quantity = forms.IntegerField(min_value=1)


class OrderCreateForm(forms.Form):
    customer_id = forms.IntegerField(required=False, min_value=1)
    notes = forms.CharField(required=False, strip=True)

    def __init__(self, data, *args, **kwargs):
        super().__init__(data, *args, **kwargs)
        self.items_data = data.get('items') if isinstance(data, dict) else None
        self.cleaned_items = []

    def clean_customer_id(self):
        customer_id = self.cleaned_data.get('customer_id')
        if customer_id and not Customer.objects.filter(pk=customer_id).exists():
            raise forms.ValidationError(_('Customer %(id)s does not exist.'), params={'id': customer_id})
        return customer_id

    def clean(self):
        cleaned_data = super().clean()
        items = self.items_data
        if not isinstance(items, list) or not items:
            self.add_error(None, _('At least one item is required.'))
            return cleaned_data

        for index, item in enumerate(items):
            if not isinstance(item, dict):
                self.add_error(None, _('Item %(index)s must be an object.') % {'index': index})
                continue
            item_form = OrderItemForm(item)
            if item_form.is_valid():
                self.cleaned_items.append(item_form.cleaned_data)
            else:
                for field, errors in item_form.errors.items():
                    self.add_error(None, f"items[{index}].{field}: {' '.join(errors)}")
        return cleaned_data


class OrderUpdateForm(forms.Form):
    status = forms.ChoiceField(required=False, choices=OrderStatus.choices)
    notes = forms.CharField(required=False, strip=True)

    def clean(self):
        cleaned_data = super().clean()
        if not self.changes:
            raise forms.ValidationError(_('Provide status and/or notes.'))
        return cleaned_data

    @property
    def changes(self):
        """Keyword arguments for OrderService.update_order()."""
        changes = {}
        if self.cleaned_data.get('status'):
            changes['status'] = self.cleaned_data['status']
        # A null is the same as leaving the field out.
        if self.data.get('notes') is not None:
            changes['notes'] = self.cleaned_data.get('notes') or ''
        return changes


def validate(form):
    """Return cleaned data or raise OrderValidationError with the form's errors."""
    if not form.is_valid():
        raise OrderValidationError(form.errors.get_json_data())
    return form.cleaned_data
