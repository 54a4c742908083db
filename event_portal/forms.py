from datetime import datetime

from flask_wtf import FlaskForm
from wtforms import DateField, EmailField, IntegerField, PasswordField, SelectField, StringField, TextAreaField, TimeField
from wtforms.validators import DataRequired, Email, EqualTo, Length, NumberRange, Optional, ValidationError

from .models import EVENT_CATEGORIES, Event, EventDraft


class LoginForm(FlaskForm):
    identifier = StringField("Username or email", validators=[DataRequired("Username or email is required")])
    password = PasswordField("Password", validators=[DataRequired("Password is required")])


class RegisterForm(FlaskForm):
    username = StringField("Username", validators=[
        DataRequired("Username is required"),
        Length(min=3, max=50, message="Username must be between 3 and 50 characters"),
    ])
    first_name = StringField("First name", validators=[DataRequired("First name is required"), Length(max=50)])
    last_name = StringField("Last name", validators=[DataRequired("Last name is required"), Length(max=50)])
    email = EmailField("Email", validators=[DataRequired("Email is required"), Email("Enter a valid email address")])
    password = PasswordField("Password", validators=[
        DataRequired("Password is required"),
        Length(min=6, max=120, message="Password must be at least 6 characters"),
    ])
    confirm_password = PasswordField("Confirm password", validators=[
        DataRequired("Please confirm your password"),
        EqualTo("password", message="Passwords do not match"),
    ])

    def to_fields(self) -> dict:
        return {
            "username": self.username.data.strip(),
            "first_name": self.first_name.data.strip(),
            "last_name": self.last_name.data.strip(),
            "email": self.email.data.strip().lower(),
            "password": self.password.data,
        }


class EventForm(FlaskForm):
    title = StringField("Title", validators=[
        DataRequired("Title is required"),
        Length(min=5, message="Title must be at least 5 characters"),
    ])
    description = TextAreaField("Description", validators=[
        DataRequired("Description is required"),
        Length(min=20, message="Description must be at least 20 characters"),
    ])
    location = StringField("Location", validators=[
        DataRequired("Location is required"),
        Length(min=3, message="Location is required"),
    ])
    date = DateField("Date", validators=[DataRequired("Date is required")])
    start_time = TimeField("Start time", validators=[DataRequired("Start time is required")])
    end_time = TimeField("End time", validators=[DataRequired("End time is required")])
    category = SelectField(
        "Category",
        choices=[("", "Select a category")] + [(c, c) for c in EVENT_CATEGORIES],
        validators=[DataRequired("Category is required")],
    )
    max_attendees = IntegerField("Max attendees", validators=[
        Optional(),
        NumberRange(min=1, message="Max attendees must be > 0"),
    ])

    def __init__(self, *args, editing: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        # Existing events may already have started
        self.editing = editing

    def validate_date(self, field):
        if not self.editing and field.data and field.data < datetime.now().date():
            raise ValidationError("Event date cannot be in the past")

    def validate_end_time(self, field):
        if self.start_time.data and field.data and field.data <= self.start_time.data:
            raise ValidationError("End time must be after start time")

    def to_draft(self) -> EventDraft:
        return EventDraft(
            title=self.title.data.strip(),
            description=self.description.data.strip(),
            location=self.location.data.strip(),
            start_time=datetime.combine(self.date.data, self.start_time.data),
            end_time=datetime.combine(self.date.data, self.end_time.data),
            category=self.category.data,
            max_attendees=self.max_attendees.data,
        )

    def allow_category(self, category: str) -> None:
        # Events created elsewhere may carry a category outside the fixed list
        if category and category not in dict(self.category.choices):
            self.category.choices = list(self.category.choices) + [(category, category)]

    def fill_from(self, event: Event) -> None:
        self.title.data = event.title
        self.description.data = event.description
        self.location.data = event.location
        self.category.data = event.category
        self.max_attendees.data = event.max_attendees
        if event.start_time:
            self.date.data = event.start_time.date()
            self.start_time.data = event.start_time.time().replace(second=0, microsecond=0)
        if event.end_time:
            self.end_time.data = event.end_time.time().replace(second=0, microsecond=0)


class TitleForm(FlaskForm):
    title = StringField("Title", validators=[
        DataRequired("Title is required"),
        Length(min=5, message="Title must be at least 5 characters"),
    ])
