from typing import Any, Generic, Sequence, Type, TypeVar
from uuid import UUID

from sqlalchemy import SQLColumnExpression, and_, update as sa_update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.sql import Select, Update

from nextsub.core.exceptions.types import DatabaseException

T = TypeVar("T")


class BaseDB(Generic[T]):
    def __init__(self, model: Type[T]):
        self.model = model

    async def get_by_id(self, session: AsyncSession, id: UUID) -> T | None:
        """
        Asynchronously retrieves an instance of the model by its primary key.

        Args:
            session (AsyncSession): The asynchronous database session to use for the query.
            id (UUID): The primary key value of the model instance to retrieve.

        Returns:
            T | None: The model instance if found, otherwise None.

        Raises:
            DatabaseException: If an error occurs while querying the database.
        """
        try:
            stmt: Select = select(self.model).where(getattr(self.model, "id") == id)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error retrieving {self.model.__name__} with ID {id}: {str(e)}"
            ) from e

    async def get_by_conditions(
        self,
        session: AsyncSession,
        conditions: Sequence[SQLColumnExpression],
        order_by: list[Any] | None = None,
        limit: int | None = None,
    ) -> Sequence[T]:
        """
        Asynchronously retrieves records of the model that match the given conditions.

        Args:
            session (AsyncSession): The asynchronous database session to use for the query.
            conditions (Sequence[SQLColumnExpression]): SQLAlchemy expressions to filter the query.
            order_by (list[Any] | None, optional): Columns or expressions to order by. Defaults to None.
            limit (int | None, optional): Max number of records to return. Defaults to None.

        Returns:
            Sequence[T]: The matching model instances.

        Raises:
            DatabaseException: If an error occurs while querying the database.
        """
        try:
            # State changes go through bulk UPDATEs; refresh identity-mapped instances
            stmt = select(self.model).execution_options(populate_existing=True)
            if conditions:
                stmt = stmt.where(and_(*conditions))
            if order_by:
                stmt = stmt.order_by(*order_by)
            if limit:
                stmt = stmt.limit(limit)
            result = await session.execute(stmt)
            return result.scalars().all()
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error retrieving {self.model.__name__} with conditions {conditions}: {str(e)}"
            ) from e

    async def get_one_by_conditions(
        self,
        session: AsyncSession,
        conditions: Sequence[SQLColumnExpression],
        order_by: list[Any] | None = None,
    ) -> T | None:
        """
        Asynchronously retrieves the first record of the model that matches the given conditions.

        Args:
            session (AsyncSession): The asynchronous database session to use for the query.
            conditions (Sequence[SQLColumnExpression]): SQLAlchemy expressions to filter the query.
            order_by (list[Any] | None, optional): Columns or expressions to order by. Defaults to None.

        Returns:
            T | None: An instance of the model if found, otherwise None.

        Raises:
            DatabaseException: If an error occurs while querying the database.
        """
        records = await self.get_by_conditions(
            session=session, conditions=conditions, order_by=order_by, limit=1
        )
        return records[0] if records else None

    async def create(
        self,
        session: AsyncSession,
        data: dict,
        commit_self: bool = True,
    ) -> T:
        """
        Asynchronously creates and persists a new instance of the model using the provided data.

        Args:
            session (AsyncSession): The SQLAlchemy asynchronous session to use for database operations.
            data (dict): A dictionary of fields and values to initialize the model instance.
            commit_self (bool, optional): If True, commits the transaction. If False, only flushes the session. Defaults to True.

        Returns:
            T: The newly created and persisted model instance.

        Raises:
            DatabaseException: If an error occurs while creating the model instance or committing the transaction.
        """
        try:
            obj = self.model(**data)
            session.add(obj)

            if commit_self:
                await session.commit()
            else:
                await session.flush()

            await session.refresh(obj)
            return obj
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error creating {self.model.__name__}: {str(e)}"
            ) from e

    async def update_by_conditions(
        self,
        session: AsyncSession,
        conditions: list[SQLColumnExpression],
        updates: dict,
        commit_self: bool = True,
    ) -> int:
        """
        Asynchronously updates records in the database that match the given conditions with the provided updates.

        Args:
            session (AsyncSession): The SQLAlchemy asynchronous session to use for the update operation.
            conditions (list[SQLColumnExpression]): SQLAlchemy expressions selecting the records to update.
            updates (dict): The fields and their new values.
            commit_self (bool, optional): If True, commits the transaction after the update; otherwise, flushes the session. Defaults to True.

        Returns:
            int: The number of records updated.

        Raises:
            DatabaseException: If an error occurs while updating the records or committing the transaction.
        """
        try:
            stmt: Update = (
                sa_update(self.model)
                .where(and_(*conditions))
                .values(**updates)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)

            if commit_self:
                await session.commit()
            else:
                await session.flush()

            return result.rowcount  # type: ignore[attr-defined]
        except SQLAlchemyError as e:
            raise DatabaseException(
                f"Error updating {self.model.__name__} with conditions {conditions}: {str(e)}"
            ) from e
