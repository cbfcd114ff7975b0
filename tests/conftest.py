pytest_plugins = [
    "tests.fixtures.stores",
    "tests.fixtures.mocked_aws",
    "tests.fixtures.app_client",
]
