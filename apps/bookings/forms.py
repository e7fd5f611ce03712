from django import forms

from .models import BookingStatus


class UUIDListField(forms.Field):
    """Accepts a JSON list or a comma-separated string of UUIDs."""

    def to_python(self, value):
        if value in self.empty_values:
            return []
        if isinstance(value, str):
            value = [v for v in (part.strip() for part in value.split(',')) if v]
        if not isinstance(value, (list, tuple)):
            raise forms.ValidationError('Enter a list of ids.')
        field = forms.UUIDField()
        return [str(field.clean(v)) for v in value]

    def validate(self, value):
        if self.required and not value:
            raise forms.ValidationError(self.error_messages['required'], code='required')


class SlotQueryForm(forms.Form):
    designer_id = forms.CharField(required=False, max_length=36)
    date = forms.DateField(input_formats=['%Y-%m-%d'])
    service_ids = UUIDListField()
    option_item_ids = UUIDListField(required=False)


class DesignerInfoForm(forms.Form):
    """?from=YYYY-MM-DD&to=YYYY-MM-DD"""
    start = forms.DateField(input_formats=['%Y-%m-%d'])
    end = forms.DateField(input_formats=['%Y-%m-%d'])

    def clean(self):
        cleaned = super().clean()
        start, end = cleaned.get('start'), cleaned.get('end')
        if start and end and (end - start).days > 366:
            raise forms.ValidationError('Range may span at most one year.')
        return cleaned


class BookingCreateForm(forms.Form):
    designer_id = forms.CharField(required=False, max_length=36)
    service_ids = UUIDListField()
    option_item_ids = UUIDListField(required=False)
    start_time = forms.DateTimeField()
    notes = forms.CharField(required=False, max_length=500)
    contact_email = forms.EmailField(required=False)
    active_pass_id = forms.UUIDField(required=False)
    pass_service_ids = UUIDListField(required=False)
    request_key = forms.CharField(required=False, max_length=64)


class PaymentNoteForm(forms.Form):
    note = forms.CharField(max_length=60, help_text='Last digits of the transferring account')


class StatusForm(forms.Form):
    status = forms.ChoiceField(choices=BookingStatus.choices)
    reason = forms.CharField(required=False, max_length=500)


class RescheduleForm(forms.Form):
    new_start_time = forms.DateTimeField()


class FeedbackForm(forms.Form):
    feedback = forms.CharField(max_length=2000)
