from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import User

@admin.register(User)
class CustomUserAdmin(UserAdmin):
    list_display = ('username', 'email', 'role', 'school', 'cohort', 'is_staff')
    list_filter = ('role', 'is_staff', 'is_superuser', 'is_active')
    search_fields = ('username', 'email', 'first_name', 'last_name', 'kajabi_contact_id')
    fieldsets = UserAdmin.fieldsets + (
        ('LEAPS', {'fields': ('role', 'school', 'cohort', 'kajabi_contact_id')}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ('LEAPS', {'fields': ('email', 'role', 'school', 'cohort')}),
    )
