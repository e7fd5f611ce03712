from django import forms


class ConsumeForm(forms.Form):
    active_pass_id = forms.UUIDField()
    content_item_id = forms.UUIDField()
    quantity = forms.IntegerField(min_value=1, initial=1, required=False)
    month = forms.RegexField(regex=r'^\d{4}-(0[1-9]|1[0-2])$', required=False)
    booking_id = forms.UUIDField(required=False)

    def clean_quantity(self):
        return self.cleaned_data.get('quantity') or 1


class RefundForm(forms.Form):
    consumption_id = forms.UUIDField()


class PassOrderForm(forms.Form):
    season_pass_id = forms.UUIDField()
    variant_name = forms.CharField(required=False, max_length=60)
    payment_note = forms.CharField(required=False, max_length=120)


class RemainingUsageForm(forms.Form):
    content_item_id = forms.UUIDField()
    quantity = forms.IntegerField(min_value=0)
