"""
URL configuration for the artfest_console project.

Every console screen lives in the ``festadmin`` app; the sign-in pair hands
credentials to the backend and keeps the returned token in the session.
"""
from django.urls import include, path

from festadmin import auth

urlpatterns = [
    path('sign-in/', auth.sign_in, name='sign_in'),
    path('sign-out/', auth.sign_out, name='sign_out'),
    path('', include('festadmin.urls')),
]
