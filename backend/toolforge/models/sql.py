# backend/toolforge/models/sql.py
"""
Database objects that live next to the tables but are not tables: the
`execute_sql` procedure, the updated_at trigger and row-level-security policies.
Used by the initial migration.
"""

EXECUTE_SQL_FUNCTION = """
CREATE OR REPLACE FUNCTION public.execute_sql(sql text)
RETURNS void
LANGUAGE plpgsql
SECURITY INVOKER
SET search_path = public
AS $$
BEGIN
  EXECUTE sql;
END;
$$;
REVOKE ALL ON FUNCTION public.execute_sql(text) FROM PUBLIC, anon;
GRANT EXECUTE ON FUNCTION public.execute_sql(text) TO authenticated, service_role;
"""

DROP_EXECUTE_SQL_FUNCTION = "DROP FUNCTION IF EXISTS public.execute_sql(text);"

TOUCH_UPDATED_AT_FUNCTION = """
CREATE OR REPLACE FUNCTION public.touch_updated_at()
RETURNS trigger
LANGUAGE plpgsql
AS $$
BEGIN
  NEW.updated_at = now();
  RETURN NEW;
END;
$$;
"""

DROP_TOUCH_UPDATED_AT_FUNCTION = "DROP FUNCTION IF EXISTS public.touch_updated_at();"

TOUCHED_TABLES = ("tools", "tool_records")

# Owners see and change their tools; fields and records follow their tool.
RLS_POLICIES = {
    "tools": [
        "CREATE POLICY tools_owner_all ON public.tools FOR ALL "
        "USING (owner_id = auth.uid()) WITH CHECK (owner_id = auth.uid());",
    ],
    "tool_fields": [
        "CREATE POLICY tool_fields_owner_all ON public.tool_fields FOR ALL "
        "USING (EXISTS (SELECT 1 FROM public.tools t WHERE t.id = tool_id AND t.owner_id = auth.uid())) "
        "WITH CHECK (EXISTS (SELECT 1 FROM public.tools t WHERE t.id = tool_id AND t.owner_id = auth.uid()));",
    ],
    "tool_records": [
        "CREATE POLICY tool_records_owner_all ON public.tool_records FOR ALL "
        "USING (EXISTS (SELECT 1 FROM public.tools t WHERE t.id = tool_id AND t.owner_id = auth.uid())) "
        "WITH CHECK (EXISTS (SELECT 1 FROM public.tools t WHERE t.id = tool_id AND t.owner_id = auth.uid()));",
    ],
}


def touch_trigger(table: str) -> str:
    return (
        f"CREATE TRIGGER {table}_touch_updated_at BEFORE UPDATE ON public.{table} "
        f"FOR EACH ROW EXECUTE FUNCTION public.touch_updated_at();"
    )


def enable_rls(table: str) -> str:
    return f"ALTER TABLE public.{table} ENABLE ROW LEVEL SECURITY;"
