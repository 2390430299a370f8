import strawberry

# Import feature queries and mutations
from app.api.graphql.orders.queries import OrderQuery
from app.api.graphql.orders.mutations import OrderMutation

# Define root Query type by combining all feature queries
@strawberry.type
class Query(OrderQuery):
    pass

# Define root Mutation type by combining all feature mutations
@strawberry.type
class Mutation(OrderMutation):
    pass

# Create schema
schema = strawberry.Schema(query=Query, mutation=Mutation)
