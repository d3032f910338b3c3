from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required by a client.

    Attributes:
        env_key (str): The raw key of the setting, without the client prefix (e.g. "API_KEY").
        val_type (str): The expected type of the value. Supported types are "string", "number", "bool" and "list".
        default (str | int | float | bool | list | None): An optional default value. If None, the setting is required and an error is raised if it is not set.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None
