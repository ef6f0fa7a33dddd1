"""Generic CRUD class that works with Pydantic schemas to eliminate boilerplate."""
from flask import jsonify, request
from shared.validation import ValidationError
from ..models import db
from pydantic import ValidationError as PydanticValidationError
import logging
from typing import Optional, Callable, Any, Dict


def format_pydantic_errors(exc):
    """Flatten a Pydantic ValidationError into 'field: msg; field: msg'."""
    errors = []
    for error in exc.errors():
        field = '.'.join(str(x) for x in error['loc'])
        msg = error['msg']
        errors.append(f"{field}: {msg}" if field else msg)
    return '; '.join(errors)


def validate_with(schema, data, exclude_none=True):
    """Validate a dict against a Pydantic schema, raising shared ValidationError."""
    try:
        validated = schema(**data)
    except PydanticValidationError as e:
        raise ValidationError(format_pydantic_errors(e))
    return validated.model_dump(exclude_none=exclude_none)


def get_json_data():
    """Get and validate JSON data from request.

    Raises:
        ValidationError: If JSON is invalid or not a dict
    """
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError('Request body must contain valid JSON')
    if not isinstance(data, dict):
        raise ValidationError('Request data must be a JSON object')
    return data


class GenericCRUD:
    """Generic CRUD class that automatically handles Pydantic validation and serialization.

    Usage:
        crud = GenericCRUD(
            model=Project,
            create_schema=ProjectCreate,
            update_schema=ProjectUpdate,
            response_schema=ProjectResponse,
            logger_name='projects'
        )
    """

    def __init__(
        self,
        model: type,
        create_schema: type,
        update_schema: type,
        response_schema: type,
        logger_name: Optional[str] = None,
        pre_create_hook: Optional[Callable[[Dict], Dict]] = None,
        pre_update_hook: Optional[Callable[[Dict, Any], Dict]] = None,
        post_update_hook: Optional[Callable[[Any, Dict], None]] = None,
        serialize_hook: Optional[Callable[[Any], Dict]] = None,
        cascade_delete_func: Optional[Callable[[str], Dict]] = None
    ):
        """Initialize generic CRUD class.

        Args:
            model: SQLAlchemy model class
            create_schema: Pydantic schema for creation (e.g., ProjectCreate)
            update_schema: Pydantic schema for partial updates (e.g., ProjectUpdate)
            response_schema: Pydantic schema for responses (e.g., ProjectResponse)
            logger_name: Optional logger name (defaults to model table name)
            pre_create_hook: Runs after validation, before the row is built.
                           Takes validated_data dict, returns modified dict.
            pre_update_hook: Runs after validation, before fields are applied.
                           Takes (validated_data, resource), returns modified dict.
            post_update_hook: Runs after fields are applied, before commit.
                           Takes (resource, validated_data).
            serialize_hook: Overrides default serialization. Takes resource, returns dict.
            cascade_delete_func: Handles cascade deletion. Takes resource_id, returns
                               summary dict; the delete response then carries it.
        """
        self.model = model
        self.create_schema = create_schema
        self.update_schema = update_schema
        self.response_schema = response_schema
        self.pre_create_hook = pre_create_hook
        self.pre_update_hook = pre_update_hook
        self.post_update_hook = post_update_hook
        self.serialize_hook = serialize_hook
        self.cascade_delete_func = cascade_delete_func
        self.logger = logging.getLogger(logger_name or model.__tablename__)

    def get_list(self, query=None, page=1, per_page=50, max_per_page=200):
        """Get paginated list of resources.

        Args:
            query: Optional pre-filtered/ordered query (defaults to all rows)
            page: Page number (default: 1)
            per_page: Items per page (default: 50)
            max_per_page: Maximum items per page (default: 200)
        """
        per_page = max(1, min(per_page, max_per_page))
        query = query if query is not None else self.model.query

        pagination = query.paginate(page=page, per_page=per_page, error_out=False)
        items = [self.serialize(item) for item in pagination.items]

        return jsonify({
            self.get_plural_name(): items,
            'pagination': {
                'page': pagination.page,
                'per_page': pagination.per_page,
                'total': pagination.total,
                'pages': pagination.pages,
                'has_next': pagination.has_next,
                'has_prev': pagination.has_prev
            }
        })

    def get_or_404(self, resource_id):
        return db.get_or_404(
            self.model, resource_id,
            description=f'{self.get_singular_name().title()} not found'
        )

    def get_detail(self, resource_id):
        """Get single resource by ID."""
        resource = self.get_or_404(resource_id)
        return jsonify(self.serialize(resource))

    def create(self, data=None):
        """Create a new resource with automatic Pydantic validation.

        Returns:
            Flask JSON response with the created resource
        """
        try:
            if data is None:
                data = get_json_data()
            validated_data = self.validate_create_data(data)

            if self.pre_create_hook:
                validated_data = self.pre_create_hook(validated_data)

            resource = self.model(**validated_data)
            db.session.add(resource)
            db.session.commit()

            self.logger.info(f"Created {self.get_singular_name()}: {resource.id} - {getattr(resource, 'name', getattr(resource, 'title', 'N/A'))}")
            return jsonify(self.serialize(resource)), 201

        except ValidationError as e:
            self.logger.warning(f"Validation error in {self.get_singular_name()} creation: {e}")
            db.session.rollback()
            return jsonify({'error': str(e)}), 400
        except Exception as e:
            self.logger.error(f"Failed to create {self.get_singular_name()}: {e}", exc_info=True)
            db.session.rollback()
            return jsonify({'error': f'Failed to create {self.get_singular_name()}'}), 500

    def update(self, resource_id):
        """Partially update an existing resource with automatic Pydantic validation."""
        resource = self.get_or_404(resource_id)
        try:
            data = get_json_data()
            validated_data = self.validate_update_data(data)

            if self.pre_update_hook:
                validated_data = self.pre_update_hook(validated_data, resource)

            for key, value in validated_data.items():
                setattr(resource, key, value)

            if self.post_update_hook:
                self.post_update_hook(resource, validated_data)

            db.session.commit()

            self.logger.info(f"Updated {self.get_singular_name()}: {resource_id}")
            return jsonify(self.serialize(resource))

        except ValidationError as e:
            self.logger.warning(f"Validation error in {self.get_singular_name()} update: {e}")
            db.session.rollback()
            return jsonify({'error': str(e)}), 400
        except Exception as e:
            self.logger.error(f"Failed to update {self.get_singular_name()}: {e}", exc_info=True)
            db.session.rollback()
            return jsonify({'error': f'Failed to update {self.get_singular_name()}'}), 500

    def delete(self, resource_id, after_commit=None):
        """Delete a resource.

        ``after_commit`` runs once the delete is committed; a rolled back
        delete never reaches it.

        Returns:
            200 with a deletion summary when a cascade function is set,
            otherwise an empty 204
        """
        resource = self.get_or_404(resource_id)
        try:
            if self.cascade_delete_func:
                summary = self.cascade_delete_func(resource_id)
            else:
                db.session.delete(resource)
                summary = None

            db.session.commit()
            if after_commit is not None:
                after_commit()

            self.logger.info(f"Deleted {self.get_singular_name()}: {resource_id}")
            if summary is None:
                return '', 204
            return jsonify({
                'message': f'{self.get_singular_name().title()} deleted successfully',
                'summary': summary
            })
        except Exception as e:
            self.logger.error(f"Failed to delete {self.get_singular_name()}: {e}", exc_info=True)
            db.session.rollback()
            return jsonify({'error': f'Failed to delete {self.get_singular_name()}'}), 500

    def serialize(self, resource):
        """Serialize resource using Pydantic response schema."""
        if self.serialize_hook:
            return self.serialize_hook(resource)

        return self.response_schema.model_validate(resource).model_dump(mode='json')

    def validate_create_data(self, data):
        """Validate data for creation using Pydantic schema.

        Raises:
            ValidationError: If validation fails
        """
        return validate_with(self.create_schema, data)

    def validate_update_data(self, data):
        """Validate data for update using Pydantic schema.

        Raises:
            ValidationError: If validation fails
        """
        return validate_with(self.update_schema, data)

    def get_singular_name(self):
        """Singular resource name for messages (e.g. 'project')."""
        table_name = self.model.__tablename__
        if table_name.endswith('s'):
            return table_name[:-1]
        return table_name

    def get_plural_name(self):
        """Plural resource name for list responses (e.g. 'projects')."""
        return self.model.__tablename__
