"""
Document types shared by the test modules.

Parent <- Child <- SubChild: a child embeds a copy of itself into its parent
(once as `child`, once inside the `children` array, and `childProp` at the
parent's top level); a sub child embeds itself into its child and nests, so
the parent's copy of the child follows.
"""

from typing import Annotated, List, Optional

from pydantic import Field

from docmodel import CascadeConfig, Document, Inline, Record, Ref, RelationArity


class SubChildRef(Record):
    id: Optional[str] = Field(default=None, alias="_id")
    foo: str = ""


class ChildRef(Record):
    id: Optional[str] = Field(default=None, alias="_id")
    name: str = ""
    sub_child: SubChildRef = Field(default_factory=SubChildRef, alias="subChild")


class CascadeParent(Document):
    __collection__ = "parents"

    bar: str = ""
    number: int = 0
    children: List[ChildRef] = Field(default_factory=list)
    child: ChildRef = Field(default_factory=ChildRef)
    child_prop: str = Field(default="", alias="childProp")


class CascadeChild(Document):
    __collection__ = "children"
    __indexes__ = "{parent_id};"

    parent_id: Annotated[Optional[str], Ref("CascadeParent")] = None
    name: str = ""
    sub_child: SubChildRef = Field(default_factory=SubChildRef, alias="subChild")
    child_prop: str = Field(default="", alias="childProp")

    def get_cascade(self, collection):
        ref = ChildRef(id=self.id, name=self.name, sub_child=self.sub_child)
        query = {"_id": self.parent_id}

        single = CascadeConfig(
            collection="parents",
            properties=["_id", "name", "subChild.foo", "subChild._id"],
            data=ref,
            through_prop="child",
            rel_type=RelationArity.ONE,
            query=query,
        )
        copy = CascadeConfig(
            collection="parents",
            properties=["childProp"],
            data={"childProp": self.child_prop},
            rel_type=RelationArity.ONE,
            query=query,
        )
        multi = CascadeConfig(
            collection="parents",
            properties=["_id", "name", "subChild.foo", "subChild._id"],
            data=ref,
            through_prop="children",
            rel_type=RelationArity.MANY,
            query=query,
        )

        tracker = self.get_diff_tracker()
        if tracker.modified("parent_id"):
            original = tracker.get_original_value("parent_id")
            if original is not None:
                for config in (single, copy, multi):
                    config.old_query = {"_id": original}

        return [single, multi, copy]


class SubChild(Document):
    __collection__ = "subchildren"

    foo: str = ""
    child_id: Annotated[Optional[str], Ref("CascadeChild")] = None

    def get_cascade(self, collection):
        return [CascadeConfig(
            collection="children",
            properties=["_id", "foo"],
            data=SubChildRef(id=self.id, foo=self.foo),
            through_prop="subChild",
            query={"_id": self.child_id},
            nest=True,
            nested_type="CascadeChild",
        )]


class Address(Record):
    street: str = ""
    city: str = Field(default="", alias="cityName")


class Audit(Record):
    created_by: str = Field(default="", alias="createdBy")
    revision: int = 0


class Money(Record):
    amount: int = 0
    currency: str = "EUR"

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"


class Person(Record):
    name: str = Field(default="", alias="fullName")
    age: int = 0
    score: float = 0.0
    tags: List[str] = Field(default_factory=list)
    address: Address = Field(default_factory=Address)
    previous_address: Optional[Address] = Field(default=None, alias="previousAddress")
    audit: Annotated[Audit, Inline()] = Field(default_factory=Audit)
    salary: Money = Field(default_factory=Money)
    secret: str = Field(default="", exclude=True)


class Pet(Record):
    name: str = ""


class Account(Document):
    __collection__ = "accounts"
    __indexes__ = "{email},unique;{owner,_created},background;"

    email: str = ""
    owner: str = ""
    profile: Person = Field(default_factory=Person)
