"""
JSON Schema Contract Validators

Модуль для валидации JSON-формы debt order и loan terms согласно формальным
JSON Schema контрактам. Использует библиотеку jsonschema.

Схемы (src/core/contracts/schema/):
- debt_order.json: relayer-форма DebtOrder (uint256 как десятичные строки)
- loan_terms.json: структурированные условия займа

Проверка формы выполняется до любого числового декодирования.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import jsonschema
import pydantic
from jsonschema import Draft202012Validator, ValidationError
from jsonschema.exceptions import best_match

from src.core.exceptions import SchemaInvalid


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы лежат в каталоге schema/ рядом с этим модулем.
    """

    def __init__(self, schema_dir: Optional[Path] = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    @property
    def schema_dir(self) -> Path:
        return self._schema_dir

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'debt_order')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема не проходит meta-validation
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Валидируем саму схему (meta-validation)
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


def error_field(error: ValidationError) -> str:
    """
    Путь к полю, нарушившему схему.

    Для ошибок 'required' путь указывает на родителя, поэтому имя поля
    берётся из первого отсутствующего свойства.
    """
    path = [str(p) for p in error.absolute_path]
    if error.validator == "required" and isinstance(error.validator_value, list):
        instance = error.instance if isinstance(error.instance, dict) else {}
        missing = [name for name in error.validator_value if name not in instance]
        if missing:
            path.append(missing[0])
    return "/".join(path) or "<root>"


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def model_error_field(error: pydantic.ValidationError) -> str:
    """
    Путь к полю JSON-формы для ошибки pydantic модели.

    Имена полей модели (snake_case) переводятся в имена JSON-формы (camelCase);
    ошибки model_validator относятся ко всему документу.
    """
    loc = error.errors()[0]["loc"]
    return "/".join(_camel_case(p) if isinstance(p, str) else str(p) for p in loc) or "<root>"


def schema_invalid_from(error: pydantic.ValidationError) -> SchemaInvalid:
    """
    Ошибка модели, прошедшей схему (диапазон uint256, checksum адреса,
    пересечение слов параметров), как SchemaInvalid.
    """
    return SchemaInvalid(model_error_field(error), error.errors()[0]["msg"])


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        """
        Args:
            schema_name: Имя схемы для валидации
        """
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]) -> Iterator[ValidationError]:
        return self.validator.iter_errors(data)

    def first_error(self, data: Dict[str, Any]) -> Optional[ValidationError]:
        """Наиболее релевантная ошибка (jsonschema best_match) или None."""
        return best_match(self.validator.iter_errors(data))

    def error_fields(self, data: Dict[str, Any]) -> List[str]:
        return sorted({error_field(e) for e in self.validator.iter_errors(data)})

    def validate_or_raise(self, data: Dict[str, Any]) -> None:
        """
        Валидация с доменным исключением.

        Raises:
            SchemaInvalid: с путём поля и сообщением jsonschema
        """
        error = self.first_error(data)
        if error is not None:
            raise SchemaInvalid(error_field(error), error.message)


class DebtOrderValidator(ContractValidator):
    """Валидатор для debt_order контракта."""

    def __init__(self):
        super().__init__("debt_order")


class LoanTermsValidator(ContractValidator):
    """Валидатор для loan_terms контракта."""

    def __init__(self):
        super().__init__("loan_terms")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_debt_order(data: Dict[str, Any]) -> None:
    """
    Raises:
        SchemaInvalid: Если данные не соответствуют схеме debt_order
    """
    DebtOrderValidator().validate_or_raise(data)


def validate_loan_terms(data: Dict[str, Any]) -> None:
    """
    Raises:
        SchemaInvalid: Если данные не соответствуют схеме loan_terms
    """
    LoanTermsValidator().validate_or_raise(data)
