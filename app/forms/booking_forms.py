"""
Forms for booking, onboarding and schedule management.
They accept both form posts and flat JSON bodies (Flask-WTF wraps JSON).
"""
from flask_wtf import FlaskForm
from wtforms import BooleanField, DateField, DecimalField, IntegerField, StringField, TimeField
from wtforms.validators import DataRequired, Length, NumberRange, Optional, Regexp, ValidationError

from app.exceptions import BusinessLogicError


class BookingForm(FlaskForm):
    """Public booking request."""

    class Meta:
        csrf = False  # Public page, no session

    barber_id = IntegerField('Barbeiro', validators=[DataRequired(message='Escolha um barbeiro')])
    service_id = IntegerField('Serviço', validators=[Optional()])
    date = DateField('Data', validators=[DataRequired(message='Escolha uma data')], format='%Y-%m-%d')
    time = StringField(
        'Horário',
        validators=[
            DataRequired(message='Escolha um horário'),
            Regexp(r'^\d{2}:\d{2}$', message='Horário deve estar no formato HH:MM')
        ]
    )
    client_name = StringField('Nome', validators=[DataRequired(message='Informe seu nome'), Length(max=200)])
    client_phone = StringField('Telefone', validators=[DataRequired(message='Informe seu telefone'), Length(max=30)])


class InitialSetupForm(FlaskForm):
    """First-time setup: the barbershop's real name."""

    name = StringField(
        'Nome da sua Barbearia',
        validators=[DataRequired(message='Por favor, insira o nome da sua barbearia.'), Length(max=200)]
    )


class BarberForm(FlaskForm):
    """Create a barber profile (no login account)."""

    name = StringField('Nome', validators=[DataRequired(message='O nome é obrigatório'), Length(max=200)])
    phone = StringField('Telefone', validators=[Optional(), Length(max=50)])
    specialty = StringField('Especialidade', validators=[Optional(), Length(max=200)])
    slot_minutes = IntegerField(
        'Duração do horário (min)',
        validators=[Optional(), NumberRange(min=5, max=240, message='Entre 5 e 240 minutos')]
    )
    commission_percent = DecimalField(
        'Comissão (%)',
        validators=[Optional(), NumberRange(min=0, max=100, message='Entre 0 e 100%')],
        places=2
    )


class ServiceForm(FlaskForm):
    """Create a service."""

    name = StringField('Nome', validators=[DataRequired(message='O nome é obrigatório'), Length(max=200)])
    price = DecimalField('Preço', validators=[DataRequired(message='O preço é obrigatório'), NumberRange(min=0)], places=2)
    duration_minutes = IntegerField(
        'Duração (min)',
        validators=[DataRequired(message='A duração é obrigatória'), NumberRange(min=5, max=480)]
    )


class WorkingHoursForm(FlaskForm):
    """Weekly template entry for one weekday."""

    weekday = IntegerField(
        'Dia da semana',
        validators=[NumberRange(min=0, max=6, message='Dia da semana deve estar entre 0 (segunda) e 6 (domingo)')]
    )
    start_time = TimeField('Início', validators=[DataRequired(message='Informe o início')], format='%H:%M')
    end_time = TimeField('Fim', validators=[DataRequired(message='Informe o fim')], format='%H:%M')
    break_start = TimeField('Início do intervalo', validators=[Optional()], format='%H:%M')
    break_end = TimeField('Fim do intervalo', validators=[Optional()], format='%H:%M')

    def validate_end_time(self, field):
        if self.start_time.data and field.data and field.data <= self.start_time.data:
            raise ValidationError('O fim deve ser depois do início')

    def validate_break_end(self, field):
        if bool(self.break_start.data) != bool(field.data):
            raise ValidationError('Informe início e fim do intervalo')
        if field.data and self.break_start.data:
            if field.data <= self.break_start.data:
                raise ValidationError('O fim do intervalo deve ser depois do início')
            if self.start_time.data and self.end_time.data and (
                self.break_start.data < self.start_time.data or field.data > self.end_time.data
            ):
                raise ValidationError('O intervalo deve estar dentro do expediente')


class AvailabilityOverrideForm(FlaskForm):
    """Day off or custom hours for one date."""

    date = DateField('Data', validators=[DataRequired(message='Informe a data')], format='%Y-%m-%d')
    available = BooleanField('Disponível', default=False)
    start_time = TimeField('Início', validators=[Optional()], format='%H:%M')
    end_time = TimeField('Fim', validators=[Optional()], format='%H:%M')

    def validate_end_time(self, field):
        if bool(self.start_time.data) != bool(field.data):
            raise ValidationError('Informe início e fim')
        if field.data and self.start_time.data and field.data <= self.start_time.data:
            raise ValidationError('O fim deve ser depois do início')


def validate_or_raise(form: FlaskForm) -> FlaskForm:
    """Validate a submitted form, raising BusinessLogicError with the field errors."""
    if not form.validate():
        messages = [message for errors in form.errors.values() for message in errors]
        raise BusinessLogicError(' '.join(messages) or 'Dados inválidos.', payload={'errors': form.errors})
    return form
