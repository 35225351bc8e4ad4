# Goal schema stores and engines
from .goal_type_store import GoalTypeStore
from .custom_field_definition_store import CustomFieldDefinitionStore
from .goal_store import GoalStore
from .custom_field_answer_store import CustomFieldAnswerStore
from .level_renumbering import LevelRenumberingEngine, level_renumbering_engine
from .schema_validation import SchemaValidationEngine, schema_validation_engine
