"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (OpenAI, Supabase, the local
file system, the console) by implementing the interfaces defined in the
domain layer. Also holds the resilience services every API call goes through.
"""
