"""
Component scanner: role classification and conflicts.
"""

import pytest

from strix.config import AbstractConfigProvider, config_provider
from strix.di import injectable
from strix.faults import ConflictingRoleError
from strix.guards import guard
from strix.interceptors import interceptor
from strix.middleware import middleware
from strix.routing import controller
from strix.scanner import ComponentScanner, Role


class TestClassification:

    def test_each_role_is_recognised(self):
        @injectable
        class Service:
            pass

        @controller("/x")
        class Api:
            pass

        @config_provider
        class AppConfigProvider(AbstractConfigProvider):
            pass

        @middleware
        class Timing:
            pass

        @guard
        class Admin:
            pass

        @interceptor
        class Wrap:
            pass

        class Plain:
            pass

        scanner = ComponentScanner()
        assert scanner.classify(Service) == Role.PROVIDER
        assert scanner.classify(Api) == Role.CONTROLLER
        assert scanner.classify(AppConfigProvider) == Role.CONFIG_PROVIDER
        assert scanner.classify(Timing) == Role.MIDDLEWARE
        assert scanner.classify(Admin) == Role.GUARD
        assert scanner.classify(Wrap) == Role.INTERCEPTOR
        assert scanner.classify(Plain) == Role.UNCLASSIFIED

    def test_controller_and_config_provider_conflict(self):
        @controller
        @config_provider("DB_CONFIG")
        class Confused(AbstractConfigProvider):
            pass

        with pytest.raises(ConflictingRoleError) as exc_info:
            ComponentScanner().classify(Confused)

        err = exc_info.value
        assert err.class_name == "Confused"
        assert {err.first_marker, err.second_marker} == {"strix:controller", "strix:config:provider"}
        assert "Confused" in err.message

    def test_injectable_controller_conflicts(self):
        @controller
        @injectable
        class Api:
            pass

        with pytest.raises(ConflictingRoleError):
            ComponentScanner().classify(Api)

    def test_injectable_guard_is_allowed(self):
        @guard
        @injectable(scope="transient")
        class Admin:
            pass

        assert ComponentScanner().classify(Admin) == Role.GUARD


class TestScan:

    def test_unclassified_classes_are_ignored(self):
        class Plain:
            pass

        registry = ComponentScanner().scan([Plain])
        assert len(registry) == 0

    def test_rescanning_is_a_noop(self):
        @injectable
        class Service:
            pass

        @controller
        class Api:
            pass

        scanner = ComponentScanner()
        scanner.scan([Service, Api])
        registry = scanner.scan([Api, Service, Service])

        assert registry.providers == [Service]
        assert registry.controllers == [Api]
        assert registry.role_of(Api) == Role.CONTROLLER

    def test_injectables_include_guards_and_middleware(self):
        @injectable
        class Service:
            pass

        @guard
        class Admin:
            pass

        @middleware
        class Timing:
            pass

        registry = ComponentScanner().scan([Service, Admin, Timing])
        assert registry.injectables() == [Service, Timing, Admin]
